#!/usr/bin/env python3
"""
Local Testing Script

Runs the campaign engine end to end on the in-memory store with the
simulated vendor. No database, no network, safe to run anytime.

Usage:
    python tests/local/test_local.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from datetime import datetime, timedelta, timezone
from campaign_engine.core.config import DatabaseConfig, ObservabilityConfig, Settings, VendorConfig
from campaign_engine.core.container import Container
from campaign_engine.core.domain.campaign import Campaign, CampaignStatus
from campaign_engine.core.domain.delivery import DeliveryStatus
from campaign_engine.core.domain.rules import rules_from_dicts
from campaign_engine.core.observability.logging import setup_logging
from campaign_engine.core.services.rule_compiler import compile_rules


def print_header(title):
    """Print section header"""
    print("\n" + "="*70)
    print(f"  {title}")
    print("="*70)


def local_settings():
    return Settings(
        environment="test",
        database=DatabaseConfig(backend="memory"),
        vendor=VendorConfig(
            success_rate=0.9,
            dispatch_jitter_min=0.0,
            dispatch_jitter_max=0.01,
            response_jitter_min=0.0,
            response_jitter_max=0.01,
            callback_url=None,
        ),
        observability=ObservabilityConfig(enable_metrics=False, log_format="text"),
    )


async def test_domain_models():
    """Test 1: Domain models (no infrastructure needed)"""
    print_header("TEST 1: Domain Models")

    rules = rules_from_dicts([
        {"field": "totalSpends", "operator": ">", "value": "1000"},
        {"field": "lastVisit", "operator": ">", "value": "30", "logic": "OR"},
    ])
    predicate = compile_rules(rules)
    print(f"Rules compiled: {predicate}")

    campaign = Campaign.create(
        name="Win-back",
        message="Hi {name}, we miss you!",
        rules=rules,
        audience_size=2,
    )
    print(f"Campaign created: {campaign.id} ({campaign.status.value})")

    campaign.start_sending()
    campaign.record_outcome(DeliveryStatus.SENT)
    update = campaign.record_outcome(DeliveryStatus.FAILED)
    print(f"Campaign after two outcomes: {campaign.status.value}")

    assert update.completed
    assert campaign.status == CampaignStatus.COMPLETED
    assert campaign.delivery_rate == 50.0

    print("\nDomain model tests PASSED!")


async def test_end_to_end():
    """Test 2: Complete flow with the simulated vendor"""
    print_header("TEST 2: End-to-End Flow")

    container = Container(local_settings())
    await container.start()

    try:
        # Step 1: Customers and orders
        print("Step 1: Creating customers and ingesting orders...")
        long_ago = datetime.now(timezone.utc) - timedelta(days=90)
        for i in range(20):
            await container.customers.create_customer(
                name=f"Customer {i}",
                email=f"customer{i}@example.com",
                total_spends=100.0 * i,
                visits=i,
                last_visit=long_ago,
            )
        await container.orders.ingest_order("customer3@example.com", 2500)
        print("   20 customers, 1 order")

        # Step 2: Preview
        rules = rules_from_dicts([
            {"field": "totalSpends", "operator": ">=", "value": "1000"},
            {"field": "lastVisit", "operator": ">", "value": "30", "logic": "OR"},
        ])
        count = await container.audience.preview(rules)
        print(f"\nStep 2: Audience preview -> {count} customers")
        assert count == 10

        # Step 3: Create and dispatch
        print("\nStep 3: Creating and dispatching campaign...")
        campaign = await container.campaigns.create_campaign(
            name="Loyal but away",
            message="Hi {name}, here is 10% off your next visit!",
            rules=rules,
        )
        records = await container.campaigns.launch(campaign.id)
        print(f"   Dispatched {len(records)} messages")

        # Step 4: Receipts
        print("\nStep 4: Waiting for vendor receipts...")
        await container.sender.drain()

        result = await container.campaigns.get_campaign(campaign.id)
        print(f"   Campaign Stats:")
        print(f"      Audience: {result.audience_size}")
        print(f"      Sent: {result.sent_count}")
        print(f"      Failed: {result.failed_count}")
        print(f"      Status: {result.status.value}")

        assert result.status == CampaignStatus.COMPLETED
        assert result.sent_count + result.failed_count == result.audience_size == 10

        stats = await container.stats.dashboard()
        print(f"\n   Dashboard: {stats}")

        print("\nEnd-to-end test PASSED!")

    finally:
        await container.close()


async def main():
    """Run all tests"""
    print("\n" + "="*70)
    print(" "*22 + "CAMPAIGN ENGINE LOCAL TESTS")
    print("="*70)

    setup_logging(
        log_level="INFO",
        log_format="text",
        log_file="logs/test_local.log",
    )
    print("Logging initialized to logs/test_local.log")

    try:
        await test_domain_models()
        await test_end_to_end()

        print("\n" + "="*70)
        print(" "*26 + "ALL TESTS PASSED!")
        print("="*70 + "\n")
        return 0

    except Exception as e:
        print(f"\nTEST FAILED: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
