"""
Customer and Order Domain Models

Customers are the targets of audience rules. Their spend, visit count and
last visit timestamp are kept current by order ingestion.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so comparisons never mix kinds"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class Customer:
    """
    Customer record

    Attributes:
        name: Display name, substituted into campaign messages
        email: Unique contact address
        total_spends: Lifetime spend, never negative
        visits: Number of orders placed
        last_visit: Timestamp of the most recent order
    """
    name: str
    email: str
    phone: Optional[str] = None
    total_spends: float = 0.0
    visits: int = 0
    last_visit: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Customer name cannot be empty")
        if not self.email or "@" not in self.email:
            raise ValueError(f"Invalid customer email: {self.email!r}")
        if self.total_spends < 0:
            raise ValueError("total_spends cannot be negative")
        if self.visits < 0:
            raise ValueError("visits cannot be negative")

        self.name = self.name.strip()
        self.email = self.email.strip().lower()
        self.last_visit = ensure_utc(self.last_visit)
        self.created_at = ensure_utc(self.created_at)

    def record_order(self, amount: float, at: Optional[datetime] = None) -> None:
        """Apply an order to spend, visits and recency"""
        self.total_spends += amount
        self.visits += 1
        self.last_visit = ensure_utc(at or datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "total_spends": self.total_spends,
            "visits": self.visits,
            "last_visit": self.last_visit.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Order:
    """Purchase made by a customer, identified by email"""
    customer_email: str
    amount: float
    date: datetime
    items: List[str] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("Order amount must be positive")
        self.customer_email = self.customer_email.strip().lower()
        self.date = ensure_utc(self.date)
