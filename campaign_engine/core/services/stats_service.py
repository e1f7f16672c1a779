"""
Stats Service

Dashboard totals across customers, orders, campaigns and recent delivery
activity.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from campaign_engine.core.ports.repository import UnitOfWork


RECENT_ACTIVITY_WINDOW = timedelta(days=7)


class StatsService:
    def __init__(self, uow_factory: Callable[[], UnitOfWork]):
        self.uow_factory = uow_factory

    async def dashboard(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Collect dashboard totals

        Returns:
            totalCustomers, totalOrders, totalCampaigns and recentActivity
            (delivery records created in the last 7 days)
        """
        since = (now or datetime.now(timezone.utc)) - RECENT_ACTIVITY_WINDOW

        async with self.uow_factory() as uow:
            return {
                "totalCustomers": await uow.customers.count_all(),
                "totalOrders": await uow.orders.count_all(),
                "totalCampaigns": await uow.campaigns.count_all(),
                "recentActivity": await uow.deliveries.count_since(since),
            }
