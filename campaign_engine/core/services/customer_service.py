"""
Customer Service

Ingests customers and orders. Orders keep the customer attributes that
audience rules read (spend, visits and last visit) up to date.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging

from campaign_engine.core.domain.customer import Customer, Order
from campaign_engine.core.ports.repository import DuplicateEntityException, UnitOfWork


logger = logging.getLogger(__name__)


class CustomerService:
    """Customer ingestion and listing"""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def create_customer(
        self,
        name: str,
        email: str,
        phone: Optional[str] = None,
        total_spends: float = 0.0,
        visits: int = 0,
        last_visit: Optional[datetime] = None,
    ) -> Customer:
        """
        Validate and store a customer

        Args:
            name: Display name
            email: Unique email address
            phone: Optional phone number
            total_spends: Lifetime spend carried over from elsewhere
            visits: Visit count carried over from elsewhere
            last_visit: Most recent visit (defaults to now)

        Returns:
            Stored customer

        Raises:
            ValueError: If a field is invalid
            DuplicateCustomerError: If the email is already registered
        """
        customer = Customer(
            name=name,
            email=email,
            phone=phone,
            total_spends=total_spends,
            visits=visits,
            last_visit=last_visit or datetime.now(timezone.utc),
        )

        try:
            async with self.uow_factory() as uow:
                if await uow.customers.get_by_email(customer.email) is not None:
                    raise DuplicateCustomerError(
                        f"Customer with email {customer.email} already exists"
                    )
                customer = await uow.customers.save(customer)
        except DuplicateEntityException as e:
            raise DuplicateCustomerError(str(e)) from e

        logger.info(f"Customer created: {customer.id}")
        return customer

    async def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        """List customers, oldest first"""
        async with self.uow_factory() as uow:
            return await uow.customers.list(limit=limit, offset=offset)


class OrderService:
    """Order ingestion and listing"""

    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def ingest_order(
        self,
        customer_email: str,
        amount: float,
        date: Optional[datetime] = None,
        items: Optional[List[str]] = None,
    ) -> Order:
        """
        Store an order and apply it to its customer

        When a customer with the order's email exists, the amount is added
        to total_spends, visits is incremented and last_visit is set to the
        ingestion time. Orders for unknown emails are stored as they are.

        Raises:
            ValueError: If amount is not positive
        """
        ingested_at = datetime.now(timezone.utc)
        order = Order(
            customer_email=customer_email,
            amount=amount,
            date=date or ingested_at,
            items=list(items or []),
        )

        async with self.uow_factory() as uow:
            order = await uow.orders.save(order)

            applied = await uow.customers.record_order(
                order.customer_email,
                order.amount,
                at=ingested_at,
            )
            if not applied:
                logger.info(
                    f"Order {order.id} stored for unknown customer {order.customer_email}"
                )

        return order

    async def list_orders(self, limit: int = 100, offset: int = 0) -> List[Order]:
        """List orders, most recent order date first"""
        async with self.uow_factory() as uow:
            return await uow.orders.list(limit=limit, offset=offset)


class DuplicateCustomerError(Exception):
    """Raised when a customer email is already registered"""
    pass
