"""Simulated vendor tests"""

import asyncio
import random

import pytest

from campaign_engine.adapters.vendors.receipt_sinks import InProcessReceiptSink
from campaign_engine.adapters.vendors.simulated_sender import SimulatedVendorSender
from campaign_engine.core.domain.campaign import CampaignStatus
from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.ports.sender import ReceiptSink, SenderException
from campaign_engine.core.services.campaign_service import CampaignService
from campaign_engine.core.services.delivery_service import DeliveryService


class CollectingSink(ReceiptSink):
    def __init__(self, fail=False):
        self.receipts = []
        self.fail = fail
        self.closed = False

    async def deliver(self, receipt):
        if self.fail:
            raise RuntimeError("aggregator down")
        self.receipts.append(receipt)

    async def close(self):
        self.closed = True


def instant_sender(success_rate, seed=1):
    return SimulatedVendorSender(
        success_rate=success_rate,
        dispatch_jitter=(0.0, 0.0),
        response_jitter=(0.0, 0.0),
        rng=random.Random(seed),
    )


def make_record():
    customer = Customer(name="Ann", email="ann@example.com")
    record = DeliveryRecord(
        campaign_id=customer.id,
        customer_id=customer.id,
        customer_email=customer.email,
        message="Hi Ann",
    )
    return record, customer


@pytest.mark.parametrize(
    "success_rate, expected",
    [(1.0, DeliveryStatus.SENT), (0.0, DeliveryStatus.FAILED)],
)
async def test_outcome_follows_success_rate(success_rate, expected):
    sender = instant_sender(success_rate)
    sink = CollectingSink()
    sender.bind(sink)

    pairs = [make_record() for _ in range(10)]
    for record, customer in pairs:
        sender.send(record, customer)
    await sender.drain()

    assert {r.outcome for r in sink.receipts} == {expected}
    assert {r.record_id for r in sink.receipts} == {record.id for record, _ in pairs}
    assert sender.in_flight == 0


async def test_send_returns_before_receipt():
    sender = instant_sender(1.0)
    sink = CollectingSink()
    sender.bind(sink)

    record, customer = make_record()
    sender.send(record, customer)

    assert sink.receipts == []
    assert sender.in_flight == 1

    await sender.drain()
    assert [r.record_id for r in sink.receipts] == [record.id]


async def test_seeded_runs_are_reproducible():
    outcomes = []
    for _ in range(2):
        sender = instant_sender(0.5, seed=42)
        sink = CollectingSink()
        sender.bind(sink)
        records = [make_record() for _ in range(30)]
        for record, customer in records:
            sender.send(record, customer)
        await sender.drain()
        by_id = {r.record_id: r.outcome for r in sink.receipts}
        outcomes.append([by_id[record.id] for record, _ in records])

    assert outcomes[0] == outcomes[1]


class TimedSink(CollectingSink):
    """Stamps each receipt with the loop time it arrived"""

    def __init__(self):
        super().__init__()
        self.arrived = {}

    async def deliver(self, receipt):
        self.arrived[receipt.record_id] = asyncio.get_running_loop().time()
        await super().deliver(receipt)


async def test_receipts_arrive_out_of_order_within_jitter_window():
    dispatch, response = (0.0, 0.05), (0.01, 0.03)
    sender = SimulatedVendorSender(
        success_rate=0.5,
        dispatch_jitter=dispatch,
        response_jitter=response,
        rng=random.Random(11),
    )
    sink = TimedSink()
    sender.bind(sink)
    loop = asyncio.get_running_loop()

    sent_at = {}
    send_order = []
    for _ in range(25):
        record, customer = make_record()
        sent_at[record.id] = loop.time()
        send_order.append(record.id)
        sender.send(record, customer)
    await sender.drain()

    receipt_order = [r.record_id for r in sink.receipts]
    assert sorted(receipt_order) == sorted(send_order)
    assert receipt_order != send_order

    # small slack for timer resolution and scheduling
    floor = dispatch[0] + response[0] - 0.005
    ceiling = dispatch[1] + response[1] + 0.05
    for record_id in send_order:
        elapsed = sink.arrived[record_id] - sent_at[record_id]
        assert floor <= elapsed <= ceiling


async def test_send_without_sink_fails():
    sender = instant_sender(1.0)
    record, customer = make_record()

    with pytest.raises(SenderException):
        sender.send(record, customer)


async def test_sink_failure_does_not_escape():
    sender = instant_sender(1.0)
    sender.bind(CollectingSink(fail=True))

    record, customer = make_record()
    sender.send(record, customer)
    await sender.drain()

    assert sender.in_flight == 0


async def test_close_cancels_outstanding_sends():
    sender = SimulatedVendorSender(dispatch_jitter=(30.0, 30.0), response_jitter=(0.0, 0.0))
    sink = CollectingSink()
    sender.bind(sink)

    for _ in range(5):
        sender.send(*make_record())
    await asyncio.sleep(0)
    assert sender.in_flight == 5

    await sender.close()

    assert sender.in_flight == 0
    assert sink.receipts == []
    assert sink.closed


async def test_end_to_end_campaign_completes(uow_factory, audience, add_customer, store):
    for i in range(25):
        await add_customer(name=f"Customer {i}")

    sender = instant_sender(0.8, seed=3)
    delivery = DeliveryService(uow_factory, audience, sender)
    sender.bind(InProcessReceiptSink(delivery))
    campaigns = CampaignService(uow_factory, audience, delivery)

    campaign = await campaigns.create_campaign("Promo", "Hi {name}", [])
    await campaigns.launch(campaign.id)
    await sender.drain()

    stored = await campaigns.get_campaign(campaign.id)
    assert stored.status == CampaignStatus.COMPLETED
    assert stored.sent_count + stored.failed_count == 25
    assert all(r.status != DeliveryStatus.PENDING for r in store.deliveries.values())
