"""
Campaign Domain Model

This module contains the core business logic for message campaigns.
It implements a small state machine for the campaign lifecycle and the
completion counters fed by delivery receipts.

State Transitions:
    PENDING -> SENDING -> COMPLETED
            <- (released when audience resolution fails)

Invariants:
    - sent_count + failed_count <= audience_size
    - status is COMPLETED exactly when the counters reach audience_size
    - audience_size is fixed when the campaign is created
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
from uuid import UUID, uuid4

from campaign_engine.core.domain.delivery import DeliveryStatus
from campaign_engine.core.domain.rules import Rule, rules_to_dicts


class CampaignStatus(str, Enum):
    """Campaign lifecycle states"""
    PENDING = "pending"
    SENDING = "sending"
    COMPLETED = "completed"


@dataclass(frozen=True)
class CounterUpdate:
    """
    Effect of applying one delivery outcome to a campaign

    Attributes:
        counted: The outcome was added to the counters
        completed: This outcome moved the campaign to COMPLETED
    """
    counted: bool
    completed: bool


class Campaign:
    """
    Campaign Aggregate Root

    One message blast to the audience selected by its rules, tracked until
    every recipient has a delivery outcome.

    Business Rules:
        1. A campaign is dispatched at most once
        2. Counters only move while the campaign is SENDING
        3. Counters never exceed the audience size fixed at creation
        4. COMPLETED is reached exactly once

    Example:
        >>> campaign = Campaign.create(
        ...     name="Win-back",
        ...     message="Hi {name}, we miss you!",
        ...     rules=rules,
        ...     audience_size=42,
        ... )
        >>> campaign.start_sending()
        >>> campaign.record_outcome(DeliveryStatus.SENT)
    """

    def __init__(
        self,
        id: UUID,
        name: str,
        message: str,
        rules: List[Rule],
        audience_size: int,
        status: CampaignStatus = CampaignStatus.PENDING,
        sent_count: int = 0,
        failed_count: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.name = name
        self.message = message
        self.rules = list(rules)
        self.audience_size = audience_size
        self.status = status
        self.sent_count = sent_count
        self.failed_count = failed_count
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    @classmethod
    def create(
        cls,
        name: str,
        message: str,
        rules: List[Rule],
        audience_size: int,
    ) -> "Campaign":
        """
        Factory method to create a new campaign

        Args:
            name: Campaign display name
            message: Message template, may contain {name}
            rules: Audience rule set
            audience_size: Audience count resolved at creation time

        Returns:
            New Campaign instance in PENDING status

        Raises:
            ValueError: If name or message is empty, or size is negative
        """
        if not name or not name.strip():
            raise ValueError("Campaign name cannot be empty")

        if not message or not message.strip():
            raise ValueError("Campaign message cannot be empty")

        if audience_size < 0:
            raise ValueError("Audience size cannot be negative")

        return cls(
            id=uuid4(),
            name=name.strip(),
            message=message,
            rules=rules,
            audience_size=audience_size,
        )

    @property
    def outcome_count(self) -> int:
        """Recipients with a known outcome"""
        return self.sent_count + self.failed_count

    @property
    def is_exhausted(self) -> bool:
        """Every recipient of the audience has an outcome"""
        return self.outcome_count >= self.audience_size

    @property
    def delivery_rate(self) -> float:
        """Share of settled recipients that were sent, in percent"""
        if self.outcome_count == 0:
            return 0.0
        return (self.sent_count / self.outcome_count) * 100

    def start_sending(self) -> None:
        """
        Move the campaign into SENDING before fan-out

        Raises:
            CampaignAlreadyStartedError: If the campaign already left PENDING
        """
        if self.status != CampaignStatus.PENDING:
            raise CampaignAlreadyStartedError(
                f"Campaign {self.id} already {self.status.value}"
            )

        self.status = CampaignStatus.SENDING
        self._touch()

    def release(self) -> None:
        """Return a SENDING campaign to PENDING when dispatch could not begin"""
        self._ensure_status(CampaignStatus.SENDING)

        if self.outcome_count:
            raise InvalidStateTransition(
                f"Campaign {self.id} already has delivery outcomes"
            )

        self.status = CampaignStatus.PENDING
        self._touch()

    def record_outcome(self, outcome: DeliveryStatus) -> CounterUpdate:
        """
        Count one delivery outcome

        Outcomes arriving when the campaign is not SENDING, or once the
        audience is exhausted, are not counted.

        Args:
            outcome: SENT or FAILED

        Returns:
            What the outcome changed
        """
        if outcome not in (DeliveryStatus.SENT, DeliveryStatus.FAILED):
            raise ValueError(f"Not a delivery outcome: {outcome}")

        if self.status != CampaignStatus.SENDING or self.is_exhausted:
            return CounterUpdate(counted=False, completed=False)

        if outcome == DeliveryStatus.SENT:
            self.sent_count += 1
        else:
            self.failed_count += 1
        self._touch()

        return CounterUpdate(counted=True, completed=self.complete_if_exhausted())

    def complete_if_exhausted(self) -> bool:
        """
        Flip SENDING to COMPLETED once the audience is exhausted

        Returns:
            True if this call performed the transition
        """
        if self.status != CampaignStatus.SENDING or not self.is_exhausted:
            return False

        self.status = CampaignStatus.COMPLETED
        self._touch()
        return True

    def _ensure_status(self, expected_status: CampaignStatus) -> None:
        """Ensure campaign is in expected status"""
        if self.status != expected_status:
            raise InvalidStateTransition(
                f"Expected status {expected_status.value}, got {self.status.value}"
            )

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize campaign to dictionary"""
        return {
            "id": str(self.id),
            "name": self.name,
            "message": self.message,
            "rules": rules_to_dicts(self.rules),
            "audience_size": self.audience_size,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "status": self.status.value,
            "delivery_rate": self.delivery_rate,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class InvalidStateTransition(Exception):
    """Raised when an invalid state transition is attempted"""
    pass


class CampaignAlreadyStartedError(InvalidStateTransition):
    """Raised when dispatch is requested for a campaign that left PENDING"""
    pass
