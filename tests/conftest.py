"""
Shared test fixtures

Every test runs against the in-memory store; no database or network is
needed. The vendor is replaced by FakeSender, which records sends and
emits receipts only when a test asks it to.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from campaign_engine.adapters.memory.store import MemoryStore
from campaign_engine.adapters.memory.unit_of_work import MemoryUnitOfWork
from campaign_engine.adapters.vendors.receipt_sinks import InProcessReceiptSink
from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus, Receipt
from campaign_engine.core.ports.sender import ReceiptSink, SenderPort
from campaign_engine.core.services.audience_service import AudienceService
from campaign_engine.core.services.campaign_service import CampaignService
from campaign_engine.core.services.delivery_service import DeliveryService


FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeSender(SenderPort):
    """Deterministic vendor: records sends, emits receipts on demand"""

    def __init__(self):
        self.sent: List[Tuple[DeliveryRecord, Customer]] = []
        self.sink: Optional[ReceiptSink] = None
        self.closed = False

    def bind(self, sink: ReceiptSink) -> None:
        self.sink = sink

    def send(self, record: DeliveryRecord, customer: Customer) -> None:
        self.sent.append((record, customer))

    async def emit(self, record_id, outcome: DeliveryStatus = DeliveryStatus.SENT) -> None:
        await self.sink.deliver(Receipt(record_id=record_id, outcome=outcome))

    async def drain(self) -> None:
        pass

    async def close(self) -> None:
        self.closed = True

    def get_name(self) -> str:
        return "fake"


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def uow_factory(store):
    return lambda: MemoryUnitOfWork(store)


@pytest.fixture
def add_customer(uow_factory, now):
    """Insert a customer; creation times increase with each call"""
    counter = {"n": 0}

    async def _add(
        name: str = "Customer",
        total_spends: float = 0.0,
        visits: int = 0,
        last_visit_days_ago: float = 1,
        email: Optional[str] = None,
    ) -> Customer:
        counter["n"] += 1
        n = counter["n"]
        customer = Customer(
            name=name,
            email=email or f"customer{n}@example.com",
            total_spends=total_spends,
            visits=visits,
            last_visit=now - timedelta(days=last_visit_days_ago),
            created_at=now - timedelta(days=365) + timedelta(seconds=n),
        )
        async with uow_factory() as uow:
            return await uow.customers.save(customer)

    return _add


@pytest.fixture
def fake_sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def audience(uow_factory) -> AudienceService:
    return AudienceService(uow_factory)


@pytest.fixture
def delivery(uow_factory, audience, fake_sender) -> DeliveryService:
    service = DeliveryService(uow_factory, audience, fake_sender)
    fake_sender.bind(InProcessReceiptSink(service))
    return service


@pytest.fixture
def campaigns(uow_factory, audience, delivery) -> CampaignService:
    return CampaignService(uow_factory, audience, delivery)


@pytest.fixture
def get_campaign(uow_factory):
    async def _get(campaign_id):
        async with uow_factory() as uow:
            return await uow.campaigns.get_by_id(campaign_id)

    return _get
