"""
Service Container

Builds the store, services and vendor sender from application settings.

    database.backend = memory    -> MemoryStore + MemoryUnitOfWork
    database.backend = postgres  -> Database + SQLAlchemyUnitOfWork
    vendor.callback_url set      -> receipts posted over HTTP
    vendor.callback_url unset    -> receipts applied in process
"""

import logging
from typing import Callable, Dict, Optional

from sqlalchemy import text

from campaign_engine.core.config import Settings, get_settings
from campaign_engine.core.ports.repository import UnitOfWork
from campaign_engine.core.ports.sender import ReceiptSink, SenderPort
from campaign_engine.core.services.audience_service import AudienceService
from campaign_engine.core.services.campaign_service import CampaignService
from campaign_engine.core.services.customer_service import CustomerService, OrderService
from campaign_engine.core.services.delivery_service import DeliveryService
from campaign_engine.core.services.stats_service import StatsService
from campaign_engine.adapters.db.postgres import Database
from campaign_engine.adapters.db.unit_of_work import SQLAlchemyUnitOfWork
from campaign_engine.adapters.memory.store import MemoryStore
from campaign_engine.adapters.memory.unit_of_work import MemoryUnitOfWork
from campaign_engine.adapters.vendors.receipt_sinks import HttpReceiptSink, InProcessReceiptSink
from campaign_engine.adapters.vendors.simulated_sender import SimulatedVendorSender


logger = logging.getLogger(__name__)


class Container:
    """
    Application object graph

    Example:
        >>> container = Container(settings)
        >>> await container.start()
        >>> campaign = await container.campaigns.create_campaign(...)
        >>> await container.close()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[MemoryStore] = None,
        sender: Optional[SenderPort] = None,
    ):
        """
        Initialize container

        Args:
            settings: Application settings (defaults to cached settings)
            store: In-memory store to use instead of a fresh one
            sender: Vendor to use instead of the simulated one
        """
        self.settings = settings or get_settings()
        self.database: Optional[Database] = None
        self.store: Optional[MemoryStore] = None

        if store is not None or self.settings.database.backend == "memory":
            self.store = store or MemoryStore()
            memory_store = self.store
            self.uow_factory: Callable[[], UnitOfWork] = lambda: MemoryUnitOfWork(memory_store)
        else:
            self.database = Database(self.settings.database)
            database = self.database
            self.uow_factory = lambda: SQLAlchemyUnitOfWork(database.session_factory)

        vendor = self.settings.vendor
        self.sender = sender or SimulatedVendorSender(
            success_rate=vendor.success_rate,
            dispatch_jitter=vendor.dispatch_jitter,
            response_jitter=vendor.response_jitter,
        )

        self.audience = AudienceService(self.uow_factory)
        self.delivery = DeliveryService(self.uow_factory, self.audience, self.sender)
        self.campaigns = CampaignService(self.uow_factory, self.audience, self.delivery)
        self.customers = CustomerService(self.uow_factory)
        self.orders = OrderService(self.uow_factory)
        self.stats = StatsService(self.uow_factory)

        self.sender.bind(self._build_sink())

    def _build_sink(self) -> ReceiptSink:
        vendor = self.settings.vendor
        if vendor.callback_url:
            logger.info(f"Vendor receipts will be posted to {vendor.callback_url}")
            return HttpReceiptSink(vendor.callback_url, timeout=vendor.callback_timeout)
        return InProcessReceiptSink(self.delivery)

    async def start(self) -> None:
        """Connect to the backing store"""
        if self.database is not None:
            await self.database.connect()
        logger.info(
            f"Container started (backend={self.settings.database.backend}, "
            f"vendor={self.sender.get_name()})"
        )

    async def close(self) -> None:
        """Stop background work and release connections"""
        await self.campaigns.close()
        await self.sender.close()
        if self.database is not None:
            await self.database.disconnect()
        logger.info("Container closed")

    async def check_ready(self) -> Dict[str, str]:
        """Report store readiness"""
        if self.database is None:
            return {"database": "ok" if self.store.available else "unavailable"}

        try:
            async with self.database.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Readiness check failed: {e}")
            return {"database": "unavailable"}

        return {"database": "ok"}
