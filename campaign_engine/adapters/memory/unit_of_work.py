"""
In-Memory Unit of Work

Writes are applied to the MemoryStore immediately, so commit and rollback
have nothing to do. Atomicity of campaign counters comes from the
per-campaign locks inside the repositories.
"""

from typing import Optional

from campaign_engine.core.ports.repository import (
    CampaignRepository,
    CustomerRepository,
    DeliveryRecordRepository,
    OrderRepository,
    UnitOfWork,
)
from campaign_engine.adapters.memory.store import (
    MemoryCampaignRepository,
    MemoryCustomerRepository,
    MemoryDeliveryRecordRepository,
    MemoryOrderRepository,
    MemoryStore,
)


class MemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work over a shared MemoryStore

    Example:
        >>> store = MemoryStore()
        >>> async with MemoryUnitOfWork(store) as uow:
        ...     await uow.customers.save(customer)
    """

    def __init__(self, store: MemoryStore):
        self.store = store
        self._customers: Optional[CustomerRepository] = None
        self._campaigns: Optional[CampaignRepository] = None
        self._deliveries: Optional[DeliveryRecordRepository] = None
        self._orders: Optional[OrderRepository] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()

    async def commit(self) -> None:
        pass

    async def rollback(self) -> None:
        pass

    @property
    def customers(self) -> CustomerRepository:
        if self._customers is None:
            self._customers = MemoryCustomerRepository(self.store)
        return self._customers

    @property
    def campaigns(self) -> CampaignRepository:
        if self._campaigns is None:
            self._campaigns = MemoryCampaignRepository(self.store)
        return self._campaigns

    @property
    def deliveries(self) -> DeliveryRecordRepository:
        if self._deliveries is None:
            self._deliveries = MemoryDeliveryRecordRepository(self.store)
        return self._deliveries

    @property
    def orders(self) -> OrderRepository:
        if self._orders is None:
            self._orders = MemoryOrderRepository(self.store)
        return self._orders
