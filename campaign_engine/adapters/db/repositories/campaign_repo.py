"""
Campaign Repository Implementation

Concrete implementation of CampaignRepository using SQLAlchemy.

Features:
    - CRUD operations
    - Conditional status transitions (PENDING -> SENDING, SENDING -> PENDING)
    - Atomic counter updates with completion in the same statement

Every status or counter write after creation is a single conditional
UPDATE ... RETURNING. PostgreSQL evaluates SET expressions against the
old row and holds the row lock for the statement, so concurrent receipts
are serialized per campaign and exactly one of them sees the row flip to
completed.
"""

from typing import Optional, List
from uuid import UUID
from datetime import datetime, timezone
import logging

from sqlalchemy import select, update, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_engine.core.domain.campaign import Campaign, CampaignStatus, CounterUpdate
from campaign_engine.core.domain.delivery import DeliveryStatus
from campaign_engine.core.domain.rules import rules_from_dicts, rules_to_dicts
from campaign_engine.core.ports.repository import CampaignRepository, EntityNotFoundException
from campaign_engine.adapters.db.models import CampaignModel


logger = logging.getLogger(__name__)


def record_outcome_statement(campaign_id: UUID, outcome: DeliveryStatus):
    """
    Build the counter UPDATE for one outcome

    Counts only while the campaign is sending and not yet exhausted, and
    completes it when this outcome reaches audience_size.
    """
    if outcome == DeliveryStatus.SENT:
        counter = CampaignModel.sent_count
    elif outcome == DeliveryStatus.FAILED:
        counter = CampaignModel.failed_count
    else:
        raise ValueError(f"Not a delivery outcome: {outcome}")

    settled = CampaignModel.sent_count + CampaignModel.failed_count

    return (
        update(CampaignModel)
        .where(
            CampaignModel.id == campaign_id,
            CampaignModel.status == CampaignStatus.SENDING.value,
            settled < CampaignModel.audience_size,
        )
        .values({
            counter.key: counter + 1,
            "status": case(
                (settled + 1 >= CampaignModel.audience_size, CampaignStatus.COMPLETED.value),
                else_=CampaignModel.status,
            ),
            "updated_at": func.now(),
        })
        .returning(CampaignModel.status)
        .execution_options(synchronize_session=False)
    )


def complete_if_exhausted_statement(campaign_id: UUID):
    """Build the UPDATE that completes an exhausted sending campaign"""
    return (
        update(CampaignModel)
        .where(
            CampaignModel.id == campaign_id,
            CampaignModel.status == CampaignStatus.SENDING.value,
            CampaignModel.sent_count + CampaignModel.failed_count >= CampaignModel.audience_size,
        )
        .values(status=CampaignStatus.COMPLETED.value, updated_at=func.now())
        .returning(CampaignModel.id)
        .execution_options(synchronize_session=False)
    )


class SQLAlchemyCampaignRepository(CampaignRepository):
    """
    SQLAlchemy implementation of Campaign Repository

    Handles mapping between Campaign domain model and CampaignModel ORM.

    Example:
        >>> repo = SQLAlchemyCampaignRepository(session)
        >>> campaign = await repo.save(campaign)
        >>> update = await repo.record_outcome(campaign.id, DeliveryStatus.SENT)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def save(self, campaign: Campaign) -> Campaign:
        """
        Save campaign (insert or update)

        Args:
            campaign: Campaign to save

        Returns:
            Saved campaign
        """
        existing = await self.session.get(CampaignModel, campaign.id)

        if existing:
            self._update_from_domain(existing, campaign)
        else:
            self.session.add(self._to_model(campaign))

        await self.session.flush()

        logger.debug(f"Saved campaign {campaign.id}")

        return campaign

    async def get_by_id(self, id: UUID) -> Optional[Campaign]:
        stmt = (
            select(CampaignModel)
            .where(CampaignModel.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            return None

        return self._to_domain(model)

    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        stmt = (
            select(CampaignModel)
            .order_by(CampaignModel.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(CampaignModel))
        return result.scalar_one()

    async def mark_sending(self, campaign_id: UUID) -> Optional[Campaign]:
        stmt = (
            update(CampaignModel)
            .where(
                CampaignModel.id == campaign_id,
                CampaignModel.status == CampaignStatus.PENDING.value,
            )
            .values(status=CampaignStatus.SENDING.value, updated_at=func.now())
            .returning(CampaignModel.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.first() is None:
            if not await self._exists(campaign_id):
                raise EntityNotFoundException(f"Campaign {campaign_id} not found")
            return None

        return await self.get_by_id(campaign_id)

    async def release_to_pending(self, campaign_id: UUID) -> None:
        stmt = (
            update(CampaignModel)
            .where(
                CampaignModel.id == campaign_id,
                CampaignModel.status == CampaignStatus.SENDING.value,
                CampaignModel.sent_count + CampaignModel.failed_count == 0,
            )
            .values(status=CampaignStatus.PENDING.value, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def record_outcome(
        self,
        campaign_id: UUID,
        outcome: DeliveryStatus,
    ) -> CounterUpdate:
        result = await self.session.execute(record_outcome_statement(campaign_id, outcome))
        row = result.first()

        if row is None:
            return CounterUpdate(counted=False, completed=False)

        return CounterUpdate(
            counted=True,
            completed=row.status == CampaignStatus.COMPLETED.value,
        )

    async def complete_if_exhausted(self, campaign_id: UUID) -> bool:
        result = await self.session.execute(complete_if_exhausted_statement(campaign_id))
        return result.first() is not None

    async def _exists(self, campaign_id: UUID) -> bool:
        stmt = select(CampaignModel.id).where(CampaignModel.id == campaign_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    def _to_domain(self, model: CampaignModel) -> Campaign:
        """
        Convert ORM model to domain entity

        Args:
            model: SQLAlchemy model

        Returns:
            Campaign domain entity
        """
        return Campaign(
            id=model.id,
            name=model.name,
            message=model.message,
            rules=rules_from_dicts(model.rules or []),
            audience_size=model.audience_size,
            status=CampaignStatus(model.status),
            sent_count=model.sent_count,
            failed_count=model.failed_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, campaign: Campaign) -> CampaignModel:
        """
        Convert domain entity to ORM model

        Args:
            campaign: Campaign domain entity

        Returns:
            SQLAlchemy model
        """
        return CampaignModel(
            id=campaign.id,
            name=campaign.name,
            message=campaign.message,
            rules=rules_to_dicts(campaign.rules),
            status=campaign.status.value,
            audience_size=campaign.audience_size,
            sent_count=campaign.sent_count,
            failed_count=campaign.failed_count,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
        )

    def _update_from_domain(self, model: CampaignModel, campaign: Campaign) -> None:
        # counters and status are owned by the conditional updates above
        model.name = campaign.name
        model.message = campaign.message
        model.rules = rules_to_dicts(campaign.rules)
        model.updated_at = datetime.now(timezone.utc)
