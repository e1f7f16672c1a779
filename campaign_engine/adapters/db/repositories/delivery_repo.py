"""
Delivery Record Repository Implementation

Concrete implementation of DeliveryRecordRepository using SQLAlchemy.

Features:
    - Bulk insert at dispatch
    - Conditional settle (PENDING -> outcome) for idempotent receipts
    - Campaign and status filtered listing
"""

from typing import Optional, List
from uuid import UUID
from datetime import datetime
import logging

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.ports.repository import (
    DeliveryRecordRepository,
    EntityNotFoundException,
)
from campaign_engine.adapters.db.models import DeliveryRecordModel


logger = logging.getLogger(__name__)


def settle_statement(record_id: UUID, outcome: DeliveryStatus):
    """Build the UPDATE that settles a record only while it is PENDING"""
    return (
        update(DeliveryRecordModel)
        .where(
            DeliveryRecordModel.id == record_id,
            DeliveryRecordModel.status == DeliveryStatus.PENDING.value,
        )
        .values(status=outcome.value, updated_at=func.now())
        .returning(DeliveryRecordModel.id)
        .execution_options(synchronize_session=False)
    )


class SQLAlchemyDeliveryRecordRepository(DeliveryRecordRepository):
    """
    SQLAlchemy implementation of DeliveryRecord Repository

    Example:
        >>> repo = SQLAlchemyDeliveryRecordRepository(session)
        >>> await repo.save_batch(records)
        >>> await repo.settle(record_id, DeliveryStatus.SENT)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, record: DeliveryRecord) -> DeliveryRecord:
        existing = await self.session.get(DeliveryRecordModel, record.id)

        if existing:
            existing.status = record.status.value
            existing.message = record.message
        else:
            self.session.add(self._to_model(record))

        await self.session.flush()
        return record

    async def save_batch(self, records: List[DeliveryRecord]) -> List[DeliveryRecord]:
        """
        Bulk save records for performance

        Args:
            records: Records to save

        Returns:
            Saved records
        """
        self.session.add_all([self._to_model(record) for record in records])
        await self.session.flush()

        logger.info(f"Bulk saved {len(records)} delivery records")

        return records

    async def get_by_id(self, id: UUID) -> Optional[DeliveryRecord]:
        stmt = (
            select(DeliveryRecordModel)
            .where(DeliveryRecordModel.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def settle(self, record_id: UUID, outcome: DeliveryStatus) -> bool:
        if not outcome.is_outcome:
            raise ValueError(f"Not a delivery outcome: {outcome}")

        result = await self.session.execute(settle_statement(record_id, outcome))
        if result.first() is not None:
            return True

        exists = await self.session.execute(
            select(DeliveryRecordModel.id).where(DeliveryRecordModel.id == record_id)
        )
        if exists.scalar_one_or_none() is None:
            raise EntityNotFoundException(f"Delivery record {record_id} not found")

        return False

    async def get_by_campaign(
        self,
        campaign_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status: Optional[DeliveryStatus] = None,
    ) -> List[DeliveryRecord]:
        stmt = select(DeliveryRecordModel).where(
            DeliveryRecordModel.campaign_id == campaign_id
        )

        if status:
            stmt = stmt.where(DeliveryRecordModel.status == status.value)

        stmt = (
            stmt.order_by(DeliveryRecordModel.created_at, DeliveryRecordModel.id)
            .limit(limit)
            .offset(offset)
        )

        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_since(self, since: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(DeliveryRecordModel)
            .where(DeliveryRecordModel.created_at >= since)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    def _to_domain(self, model: DeliveryRecordModel) -> DeliveryRecord:
        return DeliveryRecord(
            id=model.id,
            campaign_id=model.campaign_id,
            customer_id=model.customer_id,
            customer_email=model.customer_email,
            message=model.message,
            status=DeliveryStatus(model.status),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, record: DeliveryRecord) -> DeliveryRecordModel:
        return DeliveryRecordModel(
            id=record.id,
            campaign_id=record.campaign_id,
            customer_id=record.customer_id,
            customer_email=record.customer_email,
            message=record.message,
            status=record.status.value,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
