"""
Delivery Service

Fans a campaign out to its audience and folds vendor receipts back into
the campaign counters.

Responsibilities:
    - Claim a PENDING campaign for dispatch (at most once)
    - Resolve the audience and render one message per recipient
    - Persist PENDING delivery records in one batch
    - Hand records to the vendor without waiting for outcomes
    - Apply receipts idempotently and complete the campaign exactly once

Dependencies:
    - AudienceService
    - SenderPort
    - UnitOfWork (CampaignRepository, DeliveryRecordRepository)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID
import logging

from campaign_engine.core.domain.campaign import Campaign, CampaignAlreadyStartedError
from campaign_engine.core.domain.delivery import (
    DeliveryRecord,
    DeliveryStatus,
    render_message,
)
from campaign_engine.core.domain.rules import RuleSet
from campaign_engine.core.observability import metrics
from campaign_engine.core.ports.repository import (
    EntityNotFoundException,
    RepositoryException,
    UnitOfWork,
)
from campaign_engine.core.ports.sender import SenderPort
from campaign_engine.core.services.audience_service import (
    AudienceService,
    ResolverUnavailableError,
)
from campaign_engine.core.services.rule_compiler import compile_rules


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReceiptResult:
    """
    Outcome of applying one receipt

    Attributes:
        record_id: Settled delivery record
        campaign_id: Owning campaign
        counted: The receipt moved a campaign counter
        completed: The receipt moved the campaign to COMPLETED
        duplicate: The record had already been settled
    """
    record_id: UUID
    campaign_id: UUID
    counted: bool = False
    completed: bool = False
    duplicate: bool = False


class DeliveryService:
    """
    Campaign dispatch and receipt aggregation

    Each operation opens its own Unit of Work, so many receipts can be
    applied concurrently.

    Example:
        >>> service = DeliveryService(uow_factory, audience, sender)
        >>> records = await service.start_campaign(
        ...     campaign_id=campaign.id,
        ...     rules=campaign.rules,
        ...     message_template=campaign.message,
        ... )
        >>> await service.record_receipt(records[0].id, DeliveryStatus.SENT)
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        audience: AudienceService,
        sender: SenderPort,
    ):
        """
        Initialize delivery service

        Args:
            uow_factory: Creates a fresh Unit of Work per operation
            audience: Audience resolver
            sender: Message vendor
        """
        self.uow_factory = uow_factory
        self.audience = audience
        self.sender = sender

    async def start_campaign(
        self,
        campaign_id: UUID,
        rules: RuleSet,
        message_template: str,
        now: Optional[datetime] = None,
    ) -> List[DeliveryRecord]:
        """
        Dispatch a campaign to every customer matching its rules

        Sends are handed to the vendor and not awaited; outcomes arrive
        later through record_receipt().

        Args:
            campaign_id: PENDING campaign to dispatch
            rules: Audience rules
            message_template: Message text, ``{name}`` is personalized
            now: Reference time for lastVisit rules

        Returns:
            Created delivery records, one per recipient

        Raises:
            InvalidRuleError: If a rule does not parse (campaign untouched)
            CampaignNotFoundError: If the campaign does not exist
            CampaignAlreadyStartedError: If the campaign already left PENDING
            ResolverUnavailableError: If the audience could not be resolved
                (campaign is released back to PENDING)
            RepositoryException: If the delivery records could not be saved
                (campaign is released back to PENDING)
        """
        predicate = compile_rules(rules, now=now)

        campaign = await self._claim(campaign_id)

        try:
            customers = await self.audience.resolve(predicate)
        except ResolverUnavailableError:
            logger.error(
                f"Audience unavailable for campaign {campaign_id}, releasing to pending"
            )
            await self._release(campaign_id)
            raise

        if len(customers) != campaign.audience_size:
            logger.warning(
                f"Campaign {campaign_id} audience changed since creation "
                f"({campaign.audience_size} -> {len(customers)} customers)"
            )

        records = [
            DeliveryRecord(
                campaign_id=campaign_id,
                customer_id=customer.id,
                customer_email=customer.email,
                message=render_message(message_template, customer.name),
            )
            for customer in customers
        ]

        try:
            async with self.uow_factory() as uow:
                records = await uow.deliveries.save_batch(records)
        except RepositoryException as e:
            logger.error(
                f"Delivery records for campaign {campaign_id} not saved ({e}), "
                f"releasing to pending"
            )
            await self._release(campaign_id)
            raise

        metrics.record_campaign_started(len(records))
        logger.info(
            f"Campaign {campaign_id} dispatching {len(records)} messages "
            f"via {self.sender.get_name()}"
        )

        for record, customer in zip(records, customers):
            self.sender.send(record, customer)

        async with self.uow_factory() as uow:
            completed = await uow.campaigns.complete_if_exhausted(campaign_id)

        if completed:
            metrics.record_campaign_completed()
            logger.info(f"Campaign {campaign_id} completed at dispatch")

        return records

    async def record_receipt(
        self,
        record_id: UUID,
        outcome: DeliveryStatus,
    ) -> ReceiptResult:
        """
        Apply a vendor receipt

        A record is settled at most once. Only the first receipt for a
        record moves the campaign counters; later ones are duplicates.

        Args:
            record_id: Delivery record the receipt refers to
            outcome: SENT or FAILED

        Returns:
            What the receipt changed

        Raises:
            ValueError: If outcome is not SENT or FAILED
            UnknownRecordError: If the record does not exist
        """
        outcome = DeliveryStatus(outcome)
        if not outcome.is_outcome:
            raise ValueError(f"Receipt outcome must be SENT or FAILED, got {outcome.value}")

        async with self.uow_factory() as uow:
            record = await uow.deliveries.get_by_id(record_id)
            if record is None:
                metrics.record_receipt_dropped("unknown")
                logger.warning(f"Receipt for unknown delivery record {record_id} dropped")
                raise UnknownRecordError(f"Delivery record {record_id} not found")

            try:
                settled = await uow.deliveries.settle(record_id, outcome)
            except EntityNotFoundException as e:
                raise UnknownRecordError(str(e)) from e

            if not settled:
                metrics.record_receipt_dropped("duplicate")
                logger.info(f"Duplicate receipt for delivery record {record_id} ignored")
                return ReceiptResult(
                    record_id=record_id,
                    campaign_id=record.campaign_id,
                    duplicate=True,
                )

            update = await uow.campaigns.record_outcome(record.campaign_id, outcome)

        metrics.record_receipt(outcome.value)

        if not update.counted:
            logger.warning(
                f"Receipt for record {record_id} not counted: campaign "
                f"{record.campaign_id} is not sending or already exhausted"
            )

        if update.completed:
            metrics.record_campaign_completed()
            logger.info(f"Campaign {record.campaign_id} completed")

        return ReceiptResult(
            record_id=record_id,
            campaign_id=record.campaign_id,
            counted=update.counted,
            completed=update.completed,
        )

    async def _claim(self, campaign_id: UUID) -> Campaign:
        """Atomically move the campaign from PENDING to SENDING"""
        async with self.uow_factory() as uow:
            try:
                campaign = await uow.campaigns.mark_sending(campaign_id)
            except EntityNotFoundException as e:
                raise CampaignNotFoundError(f"Campaign {campaign_id} not found") from e

            if campaign is None:
                current = await uow.campaigns.get_by_id(campaign_id)
                status = current.status.value if current else "unknown"
                raise CampaignAlreadyStartedError(
                    f"Campaign {campaign_id} already {status}"
                )

        return campaign

    async def _release(self, campaign_id: UUID) -> None:
        """Return a claimed campaign to PENDING when dispatch could not begin"""
        async with self.uow_factory() as uow:
            await uow.campaigns.release_to_pending(campaign_id)


class CampaignNotFoundError(Exception):
    """Raised when a campaign id does not exist"""
    pass


class UnknownRecordError(Exception):
    """Raised when a receipt refers to a delivery record that does not exist"""
    pass
