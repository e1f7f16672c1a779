"""
Delivery Record Domain Model

One record per campaign recipient. The record is the source of truth for
what happened to that recipient's message.

Delivery Lifecycle:
    PENDING -> SENT
            -> FAILED

A record leaves PENDING exactly once; later receipts for the same record
are duplicates and change nothing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict
from uuid import UUID, uuid4


NAME_PLACEHOLDER = "{name}"


class DeliveryStatus(str, Enum):
    """Per-recipient delivery states"""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"

    @property
    def is_outcome(self) -> bool:
        """Terminal states reported by the vendor"""
        return self in (DeliveryStatus.SENT, DeliveryStatus.FAILED)


def render_message(template: str, name: str) -> str:
    """
    Personalize a campaign message

    Every occurrence of ``{name}`` is replaced; no other placeholders are
    interpreted.

    Example:
        >>> render_message("Hi {name}, offer!", "Ann")
        'Hi Ann, offer!'
    """
    return template.replace(NAME_PLACEHOLDER, name)


@dataclass
class DeliveryRecord:
    """
    Delivery attempt for one recipient of a campaign

    Attributes:
        campaign_id: Owning campaign
        customer_id: Recipient customer
        customer_email: Recipient address at dispatch time
        message: Rendered message text
        status: Delivery state
    """
    campaign_id: UUID
    customer_id: UUID
    customer_email: str
    message: str
    status: DeliveryStatus = DeliveryStatus.PENDING
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def settle(self, outcome: DeliveryStatus) -> bool:
        """
        Apply a vendor outcome

        Returns:
            True if the record moved out of PENDING, False for a duplicate
        """
        if not outcome.is_outcome:
            raise ValueError(f"Not a delivery outcome: {outcome}")

        if self.status != DeliveryStatus.PENDING:
            return False

        self.status = outcome
        self.updated_at = datetime.now(timezone.utc)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "campaign_id": str(self.campaign_id),
            "customer_id": str(self.customer_id),
            "customer_email": self.customer_email,
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Receipt:
    """Vendor outcome notification for one delivery record"""
    record_id: UUID
    outcome: DeliveryStatus

    def __post_init__(self):
        if not self.outcome.is_outcome:
            raise ValueError(f"Receipt outcome must be SENT or FAILED, got {self.outcome}")
