"""
In-Memory Store

Process-local persistence behind the same repository ports as the
PostgreSQL adapter. Used for local runs (database.backend = memory) and
the test suite.

Entities are copied on the way in and out so callers never share state
with the store, matching what a database round-trip gives them.

Campaign counter updates run the aggregate's own check-and-set methods
under a per-campaign asyncio.Lock.
"""

import asyncio
import copy
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
import logging

from campaign_engine.core.domain.campaign import Campaign, CampaignStatus, CounterUpdate
from campaign_engine.core.domain.customer import Customer, Order
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.domain.predicate import Predicate
from campaign_engine.core.ports.repository import (
    CampaignRepository,
    CustomerRepository,
    DeliveryRecordRepository,
    DuplicateEntityException,
    EntityNotFoundException,
    OrderRepository,
    StoreUnavailableError,
)


logger = logging.getLogger(__name__)


class MemoryStore:
    """
    Shared tables for all in-memory repositories

    Attributes:
        available: When False, customer queries raise StoreUnavailableError
    """

    def __init__(self):
        self.customers: Dict[UUID, Customer] = {}
        self.campaigns: Dict[UUID, Campaign] = {}
        self.deliveries: Dict[UUID, DeliveryRecord] = {}
        self.orders: Dict[UUID, Order] = {}
        self.available = True
        self._campaign_locks: Dict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def campaign_lock(self, campaign_id: UUID) -> asyncio.Lock:
        return self._campaign_locks[campaign_id]

    def ensure_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("In-memory customer store is unavailable")


class MemoryCustomerRepository(CustomerRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def save(self, entity: Customer) -> Customer:
        for existing in self.store.customers.values():
            if existing.email == entity.email and existing.id != entity.id:
                raise DuplicateEntityException(
                    f"Customer with email {entity.email} already exists"
                )

        self.store.customers[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def get_by_id(self, id: UUID) -> Optional[Customer]:
        customer = self.store.customers.get(id)
        return copy.deepcopy(customer) if customer else None

    async def count(self, predicate: Predicate) -> int:
        self.store.ensure_available()
        return sum(1 for c in self.store.customers.values() if predicate.matches(c))

    async def find(self, predicate: Predicate) -> List[Customer]:
        self.store.ensure_available()
        matches = [
            copy.deepcopy(c) for c in self.store.customers.values()
            if predicate.matches(c)
        ]
        return sorted(matches, key=lambda c: (c.created_at, c.id))

    async def get_by_email(self, email: str) -> Optional[Customer]:
        email = email.strip().lower()
        for customer in self.store.customers.values():
            if customer.email == email:
                return copy.deepcopy(customer)
        return None

    async def record_order(self, email: str, amount: float, at: datetime) -> bool:
        email = email.strip().lower()
        for customer in self.store.customers.values():
            if customer.email == email:
                # applied in place, no await between read and write
                customer.record_order(amount, at=at)
                return True
        return False

    async def list(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        customers = sorted(self.store.customers.values(), key=lambda c: (c.created_at, c.id))
        return [copy.deepcopy(c) for c in customers[offset:offset + limit]]

    async def count_all(self) -> int:
        return len(self.store.customers)


class MemoryCampaignRepository(CampaignRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def save(self, entity: Campaign) -> Campaign:
        self.store.campaigns[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def get_by_id(self, id: UUID) -> Optional[Campaign]:
        campaign = self.store.campaigns.get(id)
        return copy.deepcopy(campaign) if campaign else None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        campaigns = sorted(
            self.store.campaigns.values(),
            key=lambda c: c.created_at,
            reverse=True,
        )
        return [copy.deepcopy(c) for c in campaigns[offset:offset + limit]]

    async def count_all(self) -> int:
        return len(self.store.campaigns)

    def _get_stored(self, campaign_id: UUID) -> Campaign:
        campaign = self.store.campaigns.get(campaign_id)
        if campaign is None:
            raise EntityNotFoundException(f"Campaign {campaign_id} not found")
        return campaign

    async def mark_sending(self, campaign_id: UUID) -> Optional[Campaign]:
        async with self.store.campaign_lock(campaign_id):
            campaign = self._get_stored(campaign_id)
            if campaign.status != CampaignStatus.PENDING:
                return None
            campaign.start_sending()
            return copy.deepcopy(campaign)

    async def release_to_pending(self, campaign_id: UUID) -> None:
        async with self.store.campaign_lock(campaign_id):
            campaign = self._get_stored(campaign_id)
            if campaign.status == CampaignStatus.SENDING and campaign.outcome_count == 0:
                campaign.release()

    async def record_outcome(
        self,
        campaign_id: UUID,
        outcome: DeliveryStatus,
    ) -> CounterUpdate:
        async with self.store.campaign_lock(campaign_id):
            return self._get_stored(campaign_id).record_outcome(outcome)

    async def complete_if_exhausted(self, campaign_id: UUID) -> bool:
        async with self.store.campaign_lock(campaign_id):
            return self._get_stored(campaign_id).complete_if_exhausted()


class MemoryDeliveryRecordRepository(DeliveryRecordRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def save(self, entity: DeliveryRecord) -> DeliveryRecord:
        self.store.deliveries[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def save_batch(self, records: List[DeliveryRecord]) -> List[DeliveryRecord]:
        for record in records:
            self.store.deliveries[record.id] = copy.deepcopy(record)
        return [copy.deepcopy(r) for r in records]

    async def get_by_id(self, id: UUID) -> Optional[DeliveryRecord]:
        record = self.store.deliveries.get(id)
        return copy.deepcopy(record) if record else None

    async def settle(self, record_id: UUID, outcome: DeliveryStatus) -> bool:
        record = self.store.deliveries.get(record_id)
        if record is None:
            raise EntityNotFoundException(f"Delivery record {record_id} not found")
        return record.settle(outcome)

    async def get_by_campaign(
        self,
        campaign_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status: Optional[DeliveryStatus] = None,
    ) -> List[DeliveryRecord]:
        records = [
            r for r in self.store.deliveries.values()
            if r.campaign_id == campaign_id and (status is None or r.status == status)
        ]
        records.sort(key=lambda r: (r.created_at, r.id))
        return [copy.deepcopy(r) for r in records[offset:offset + limit]]

    async def count_since(self, since: datetime) -> int:
        return sum(1 for r in self.store.deliveries.values() if r.created_at >= since)


class MemoryOrderRepository(OrderRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def save(self, entity: Order) -> Order:
        self.store.orders[entity.id] = copy.deepcopy(entity)
        return copy.deepcopy(entity)

    async def get_by_id(self, id: UUID) -> Optional[Order]:
        order = self.store.orders.get(id)
        return copy.deepcopy(order) if order else None

    async def list(self, limit: int = 100, offset: int = 0) -> List[Order]:
        orders = sorted(self.store.orders.values(), key=lambda o: o.date, reverse=True)
        return [copy.deepcopy(o) for o in orders[offset:offset + limit]]

    async def count_all(self) -> int:
        return len(self.store.orders)
