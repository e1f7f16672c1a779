"""
Customer Repository Implementation

Concrete implementation of CustomerRepository using SQLAlchemy.
Audience predicates are pushed down to the database as WHERE clauses.
Orders are applied with a single UPDATE so concurrent orders for one
customer add up instead of overwriting each other.
"""

from typing import Optional, List
from datetime import datetime
from uuid import UUID
import logging

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.predicate import Predicate
from campaign_engine.core.ports.repository import (
    CustomerRepository,
    DuplicateEntityException,
    StoreUnavailableError,
)
from campaign_engine.adapters.db.models import CustomerModel
from campaign_engine.adapters.db.predicate_sql import to_clause


logger = logging.getLogger(__name__)


def record_order_statement(email: str, amount: float, at: datetime):
    """Build the UPDATE that applies one order to its customer"""
    return (
        update(CustomerModel)
        .where(CustomerModel.email == email.strip().lower())
        .values(
            total_spends=CustomerModel.total_spends + amount,
            visits=CustomerModel.visits + 1,
            last_visit=at,
            updated_at=func.now(),
        )
        .returning(CustomerModel.id)
        .execution_options(synchronize_session=False)
    )


class SQLAlchemyCustomerRepository(CustomerRepository):
    """
    SQLAlchemy implementation of Customer Repository

    Example:
        >>> repo = SQLAlchemyCustomerRepository(session)
        >>> await repo.count(compile_rules(rules))
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, customer: Customer) -> Customer:
        """
        Save customer (insert or update)

        Raises:
            DuplicateEntityException: If the email belongs to another customer
        """
        existing = await self.session.get(CustomerModel, customer.id)

        if existing:
            existing.name = customer.name
            existing.email = customer.email
            existing.phone = customer.phone
            existing.total_spends = customer.total_spends
            existing.visits = customer.visits
            existing.last_visit = customer.last_visit
        else:
            self.session.add(self._to_model(customer))

        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateEntityException(
                f"Customer with email {customer.email} already exists"
            ) from e

        return customer

    async def get_by_id(self, id: UUID) -> Optional[Customer]:
        model = await self.session.get(CustomerModel, id)
        return self._to_domain(model) if model else None

    async def count(self, predicate: Predicate) -> int:
        """Count matching customers in the database"""
        stmt = select(func.count()).select_from(CustomerModel).where(to_clause(predicate))

        try:
            result = await self.session.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(f"Customer count failed: {e}") from e

        return result.scalar_one()

    async def find(self, predicate: Predicate) -> List[Customer]:
        """Load matching customers, oldest first"""
        stmt = (
            select(CustomerModel)
            .where(to_clause(predicate))
            .order_by(CustomerModel.created_at, CustomerModel.id)
        )

        try:
            result = await self.session.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailableError(f"Customer query failed: {e}") from e

        return [self._to_domain(model) for model in result.scalars().all()]

    async def get_by_email(self, email: str) -> Optional[Customer]:
        stmt = select(CustomerModel).where(CustomerModel.email == email.strip().lower())
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def record_order(self, email: str, amount: float, at: datetime) -> bool:
        result = await self.session.execute(record_order_statement(email, amount, at))
        return result.scalar_one_or_none() is not None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        stmt = (
            select(CustomerModel)
            .order_by(CustomerModel.created_at, CustomerModel.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(CustomerModel))
        return result.scalar_one()

    def _to_domain(self, model: CustomerModel) -> Customer:
        return Customer(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            total_spends=model.total_spends,
            visits=model.visits,
            last_visit=model.last_visit,
            created_at=model.created_at,
        )

    def _to_model(self, customer: Customer) -> CustomerModel:
        return CustomerModel(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            total_spends=customer.total_spends,
            visits=customer.visits,
            last_visit=customer.last_visit,
            created_at=customer.created_at,
        )
