"""
Sender Port Interface

Defines the contract for the external message vendor.
The vendor accepts one message per recipient and reports the outcome
later, out of band, as a Receipt delivered through a ReceiptSink.

Implementations:
    - SimulatedVendorSender (random latency and outcome)
    - Test doubles with fixed outcomes and no delay

Design Pattern: Hexagonal Architecture (Ports & Adapters)
"""

from abc import ABC, abstractmethod

from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.delivery import DeliveryRecord, Receipt


class ReceiptSink(ABC):
    """Channel that carries vendor receipts back to the aggregator"""

    @abstractmethod
    async def deliver(self, receipt: Receipt) -> None:
        """
        Hand one receipt to the aggregator

        Args:
            receipt: Outcome for a single delivery record
        """
        pass

    async def close(self) -> None:
        """Release resources held by the sink"""
        pass


class SenderPort(ABC):
    """
    Abstract interface for the message vendor

    send() must return without waiting for the outcome; the outcome
    arrives later through the sender's receipt sink. Outcomes for
    different records may arrive in any order.
    """

    @abstractmethod
    def send(self, record: DeliveryRecord, customer: Customer) -> None:
        """
        Submit one rendered message for delivery

        Args:
            record: PENDING delivery record carrying the rendered message
            customer: Recipient
        """
        pass

    @abstractmethod
    def bind(self, sink: ReceiptSink) -> None:
        """Attach the sink receipts are delivered to"""
        pass

    @abstractmethod
    async def drain(self) -> None:
        """Wait until every submitted send has delivered its receipt"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Cancel outstanding sends and release resources"""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """
        Get vendor name

        Returns:
            Vendor identifier (e.g., "simulated")
        """
        pass


class SenderException(Exception):
    """Base exception for vendor errors"""
    pass
