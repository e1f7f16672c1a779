"""Audience preview and resolution tests"""

import pytest

from campaign_engine.core.domain.rules import InvalidRuleError, rules_from_dicts
from campaign_engine.core.services.audience_service import ResolverUnavailableError
from campaign_engine.core.services.rule_compiler import compile_rules


HIGH_SPENDERS = rules_from_dicts([{"field": "totalSpends", "operator": ">", "value": "100"}])


async def test_preview_counts_matching_customers(audience, add_customer, now):
    await add_customer(total_spends=150)
    await add_customer(total_spends=100)
    await add_customer(total_spends=5000)

    assert await audience.preview(HIGH_SPENDERS, now=now) == 2


async def test_preview_of_empty_rules_counts_everyone(audience, add_customer, now):
    for _ in range(3):
        await add_customer()

    assert await audience.preview([], now=now) == 3


async def test_preview_rejects_invalid_rules(audience, now):
    rules = rules_from_dicts([{"field": "visits", "operator": ">", "value": "many"}])

    with pytest.raises(InvalidRuleError):
        await audience.preview(rules, now=now)


async def test_resolve_orders_by_creation(audience, add_customer, now):
    first = await add_customer(name="First", total_spends=500)
    await add_customer(name="Skipped", total_spends=1)
    third = await add_customer(name="Third", total_spends=900)

    customers = await audience.resolve(compile_rules(HIGH_SPENDERS, now=now))

    assert [c.id for c in customers] == [first.id, third.id]


async def test_resolution_reads_current_customer_state(audience, add_customer, uow_factory, now):
    customer = await add_customer(total_spends=50)
    assert await audience.preview(HIGH_SPENDERS, now=now) == 0

    async with uow_factory() as uow:
        stored = await uow.customers.get_by_id(customer.id)
        stored.record_order(75, at=now)
        await uow.customers.save(stored)

    assert await audience.preview(HIGH_SPENDERS, now=now) == 1


async def test_store_failure_is_reported_as_unavailable(audience, add_customer, store, now):
    await add_customer(total_spends=500)
    store.available = False

    with pytest.raises(ResolverUnavailableError):
        await audience.preview(HIGH_SPENDERS, now=now)

    with pytest.raises(ResolverUnavailableError):
        await audience.resolve(compile_rules(HIGH_SPENDERS, now=now))
