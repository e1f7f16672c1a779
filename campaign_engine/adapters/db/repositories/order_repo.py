"""
Order Repository Implementation
"""

from typing import Optional, List
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_engine.core.domain.customer import Order
from campaign_engine.core.ports.repository import OrderRepository
from campaign_engine.adapters.db.models import OrderModel


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, order: Order) -> Order:
        self.session.add(OrderModel(
            id=order.id,
            customer_email=order.customer_email,
            amount=order.amount,
            date=order.date,
            items=list(order.items),
            created_at=order.created_at,
        ))
        await self.session.flush()
        return order

    async def get_by_id(self, id: UUID) -> Optional[Order]:
        model = await self.session.get(OrderModel, id)
        return self._to_domain(model) if model else None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Order]:
        stmt = (
            select(OrderModel)
            .order_by(OrderModel.date.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(OrderModel))
        return result.scalar_one()

    def _to_domain(self, model: OrderModel) -> Order:
        return Order(
            id=model.id,
            customer_email=model.customer_email,
            amount=model.amount,
            date=model.date,
            items=list(model.items or []),
            created_at=model.created_at,
        )
