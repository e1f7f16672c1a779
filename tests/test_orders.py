"""Customer, order and dashboard service tests"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from campaign_engine.core.services.customer_service import (
    CustomerService,
    DuplicateCustomerError,
    OrderService,
)
from campaign_engine.core.services.stats_service import StatsService


@pytest.fixture
def customers(uow_factory):
    return CustomerService(uow_factory)


@pytest.fixture
def orders(uow_factory):
    return OrderService(uow_factory)


@pytest.fixture
def stats(uow_factory):
    return StatsService(uow_factory)


async def test_create_customer_normalizes_email(customers):
    customer = await customers.create_customer(name=" Ann ", email="Ann@Example.COM")

    assert customer.name == "Ann"
    assert customer.email == "ann@example.com"
    assert (customer.total_spends, customer.visits) == (0.0, 0)


async def test_duplicate_email_is_rejected(customers):
    await customers.create_customer(name="Ann", email="ann@example.com")

    with pytest.raises(DuplicateCustomerError):
        await customers.create_customer(name="Other Ann", email="ANN@example.com")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "", "email": "a@example.com"},
        {"name": "Ann", "email": "not-an-email"},
        {"name": "Ann", "email": "a@example.com", "total_spends": -1},
    ],
)
async def test_invalid_customer_is_rejected(customers, kwargs):
    with pytest.raises(ValueError):
        await customers.create_customer(**kwargs)


async def test_order_updates_customer(customers, orders, uow_factory, now):
    customer = await customers.create_customer(
        name="Ann",
        email="ann@example.com",
        total_spends=100,
        visits=2,
        last_visit=now - timedelta(days=60),
    )

    order = await orders.ingest_order("ANN@example.com", 49.5, items=["tea"])

    async with uow_factory() as uow:
        updated = await uow.customers.get_by_id(customer.id)

    assert order.customer_email == "ann@example.com"
    assert updated.total_spends == 149.5
    assert updated.visits == 3
    assert updated.last_visit > now - timedelta(days=1)


async def test_concurrent_orders_all_count(customers, orders, uow_factory):
    customer = await customers.create_customer(name="Ann", email="ann@example.com")

    await asyncio.gather(
        *(orders.ingest_order("ann@example.com", 2.5) for _ in range(20))
    )

    async with uow_factory() as uow:
        updated = await uow.customers.get_by_id(customer.id)

    assert updated.total_spends == 50.0
    assert updated.visits == 20


async def test_order_for_unknown_email_is_stored_only(orders, store):
    order = await orders.ingest_order("ghost@example.com", 10)

    assert list(store.orders) == [order.id]
    assert store.customers == {}


async def test_order_amount_must_be_positive(orders):
    with pytest.raises(ValueError):
        await orders.ingest_order("ann@example.com", 0)


async def test_orders_list_most_recent_first(orders, now):
    older = await orders.ingest_order("a@example.com", 5, date=now - timedelta(days=3))
    newer = await orders.ingest_order("a@example.com", 5, date=now - timedelta(days=1))

    assert [o.id for o in await orders.list_orders()] == [newer.id, older.id]


async def test_dashboard_totals(stats, campaigns, delivery, orders, add_customer, store, now):
    for _ in range(3):
        await add_customer()
    await orders.ingest_order("customer1@example.com", 20)
    campaign = await campaigns.create_campaign("Promo", "Hi {name}", [])
    await delivery.start_campaign(campaign.id, campaign.rules, campaign.message)

    # one record falls outside the recent window
    old = next(iter(store.deliveries.values()))
    old.created_at = datetime.now(timezone.utc) - timedelta(days=30)

    result = await stats.dashboard()

    assert result == {
        "totalCustomers": 3,
        "totalOrders": 1,
        "totalCampaigns": 1,
        "recentActivity": 2,
    }


async def test_dashboard_on_empty_store(stats):
    assert await stats.dashboard() == {
        "totalCustomers": 0,
        "totalOrders": 0,
        "totalCampaigns": 0,
        "recentActivity": 0,
    }
