"""
Campaign Service

Orchestrates the campaign lifecycle from creation to dispatch.

Responsibilities:
    - Campaign creation with audience size fixed at creation time
    - Campaign queries and delivery record listing
    - Launching dispatch in the background

Dependencies:
    - AudienceService
    - DeliveryService
    - UnitOfWork (CampaignRepository, DeliveryRecordRepository)
"""

from typing import Callable, List, Optional, Set
from uuid import UUID
import asyncio
import logging

from campaign_engine.core.domain.campaign import Campaign
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.domain.rules import RuleSet
from campaign_engine.core.observability import metrics
from campaign_engine.core.observability.logging import LogContext
from campaign_engine.core.ports.repository import UnitOfWork
from campaign_engine.core.services.audience_service import AudienceService
from campaign_engine.core.services.delivery_service import (
    CampaignNotFoundError,
    DeliveryService,
)
from campaign_engine.core.services.rule_compiler import compile_rules


logger = logging.getLogger(__name__)


class CampaignService:
    """
    Campaign orchestration service

    Example:
        >>> service = CampaignService(uow_factory, audience, delivery)
        >>> campaign = await service.create_campaign(
        ...     name="Win-back",
        ...     message="Hi {name}, we miss you!",
        ...     rules=rules,
        ... )
        >>> service.launch_in_background(campaign)
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        audience: AudienceService,
        delivery: DeliveryService,
    ):
        """
        Initialize campaign service

        Args:
            uow_factory: Creates a fresh Unit of Work per operation
            audience: Audience resolver used to size new campaigns
            delivery: Dispatcher used to launch campaigns
        """
        self.uow_factory = uow_factory
        self.audience = audience
        self.delivery = delivery
        self._launches: Set[asyncio.Task] = set()

    async def create_campaign(
        self,
        name: str,
        message: str,
        rules: RuleSet,
    ) -> Campaign:
        """
        Create a PENDING campaign

        The audience is counted now and stored as audience_size; it is the
        completion target for the campaign's counters.

        Args:
            name: Campaign name
            message: Message template
            rules: Audience rules

        Returns:
            Created campaign

        Raises:
            InvalidRuleError: If a rule does not parse
            ResolverUnavailableError: If the audience cannot be counted
            ValueError: If name or message is empty
        """
        audience_size = await self.audience.count(compile_rules(rules))

        campaign = Campaign.create(
            name=name,
            message=message,
            rules=list(rules),
            audience_size=audience_size,
        )

        async with self.uow_factory() as uow:
            campaign = await uow.campaigns.save(campaign)

        metrics.record_campaign_created()
        logger.info(
            f"Campaign created: {campaign.id} (name={campaign.name}, "
            f"audience={audience_size})"
        )

        return campaign

    async def get_campaign(self, campaign_id: UUID) -> Campaign:
        """
        Get campaign by ID

        Raises:
            CampaignNotFoundError: If campaign does not exist
        """
        async with self.uow_factory() as uow:
            campaign = await uow.campaigns.get_by_id(campaign_id)

        if campaign is None:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        return campaign

    async def list_campaigns(self, limit: int = 100, offset: int = 0) -> List[Campaign]:
        """List campaigns, newest first"""
        async with self.uow_factory() as uow:
            return await uow.campaigns.list(limit=limit, offset=offset)

    async def get_deliveries(
        self,
        campaign_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status: Optional[DeliveryStatus] = None,
    ) -> List[DeliveryRecord]:
        """
        List delivery records of a campaign

        Raises:
            CampaignNotFoundError: If campaign does not exist
        """
        async with self.uow_factory() as uow:
            if await uow.campaigns.get_by_id(campaign_id) is None:
                raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

            return await uow.deliveries.get_by_campaign(
                campaign_id,
                limit=limit,
                offset=offset,
                status=status,
            )

    async def launch(self, campaign_id: UUID) -> List[DeliveryRecord]:
        """
        Dispatch a stored campaign using its own rules and message

        Raises:
            CampaignNotFoundError: If campaign does not exist
            CampaignAlreadyStartedError: If campaign already left PENDING
        """
        campaign = await self.get_campaign(campaign_id)

        with LogContext(campaign_id=str(campaign.id)):
            return await self.delivery.start_campaign(
                campaign_id=campaign.id,
                rules=campaign.rules,
                message_template=campaign.message,
            )

    def launch_in_background(self, campaign: Campaign) -> asyncio.Task:
        """
        Start dispatch without waiting for it

        Failures are logged; the campaign stays PENDING when dispatch could
        not begin.
        """
        task = asyncio.create_task(self.launch(campaign.id))
        self._launches.add(task)
        task.add_done_callback(self._on_launch_done)
        return task

    async def wait_for_launches(self) -> None:
        """Wait for every background dispatch started so far"""
        if self._launches:
            await asyncio.gather(*list(self._launches), return_exceptions=True)

    async def close(self) -> None:
        """Cancel background dispatches that are still running"""
        for task in list(self._launches):
            task.cancel()
        await self.wait_for_launches()

    def _on_launch_done(self, task: asyncio.Task) -> None:
        self._launches.discard(task)

        if task.cancelled():
            return

        error = task.exception()
        if error is not None:
            logger.error(
                f"Background dispatch failed: {type(error).__name__}: {error}"
            )
