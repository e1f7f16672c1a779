"""
Unit of Work Implementation

Manages database transactions and coordinates repositories.
Implements the Unit of Work pattern for atomic operations.

Features:
    - Transaction management
    - Repository coordination
    - Automatic rollback on errors
    - Context manager support
"""

from typing import Callable, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_engine.core.ports.repository import (
    UnitOfWork,
    CampaignRepository,
    CustomerRepository,
    DeliveryRecordRepository,
    OrderRepository,
)
from campaign_engine.adapters.db.repositories.campaign_repo import SQLAlchemyCampaignRepository
from campaign_engine.adapters.db.repositories.customer_repo import SQLAlchemyCustomerRepository
from campaign_engine.adapters.db.repositories.delivery_repo import SQLAlchemyDeliveryRecordRepository
from campaign_engine.adapters.db.repositories.order_repo import SQLAlchemyOrderRepository


logger = logging.getLogger(__name__)


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    SQLAlchemy Unit of Work implementation

    Owns one session for the duration of the block and closes it on exit,
    so every service call gets its own transaction.

    Example:
        >>> async with SQLAlchemyUnitOfWork(db.session_factory) as uow:
        ...     campaign = await uow.campaigns.get_by_id(campaign_id)
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        """
        Initialize Unit of Work

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory
        self.session: Optional[AsyncSession] = None
        self._customers: Optional[CustomerRepository] = None
        self._campaigns: Optional[CampaignRepository] = None
        self._deliveries: Optional[DeliveryRecordRepository] = None
        self._orders: Optional[OrderRepository] = None

    async def __aenter__(self):
        """Open a session and begin a transaction"""
        self.session = self.session_factory()
        await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Commit or rollback transaction"""
        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug(f"Transaction rolled back due to: {exc_type.__name__}")
            else:
                try:
                    await self.commit()
                except Exception:
                    logger.exception("Commit failed, rolling back")
                    await self.rollback()
                    raise
        finally:
            await self.session.close()
            self.session = None
            self._customers = None
            self._campaigns = None
            self._deliveries = None
            self._orders = None

    async def commit(self) -> None:
        """Commit transaction"""
        if self.session.in_transaction():
            await self.session.commit()
            logger.debug("Transaction committed")

    async def rollback(self) -> None:
        """Rollback transaction"""
        if self.session.in_transaction():
            await self.session.rollback()
            logger.debug("Transaction rolled back")

    @property
    def customers(self) -> CustomerRepository:
        """Get customer repository"""
        if self._customers is None:
            self._customers = SQLAlchemyCustomerRepository(self.session)
        return self._customers

    @property
    def campaigns(self) -> CampaignRepository:
        """Get campaign repository"""
        if self._campaigns is None:
            self._campaigns = SQLAlchemyCampaignRepository(self.session)
        return self._campaigns

    @property
    def deliveries(self) -> DeliveryRecordRepository:
        """Get delivery record repository"""
        if self._deliveries is None:
            self._deliveries = SQLAlchemyDeliveryRecordRepository(self.session)
        return self._deliveries

    @property
    def orders(self) -> OrderRepository:
        """Get order repository"""
        if self._orders is None:
            self._orders = SQLAlchemyOrderRepository(self.session)
        return self._orders
