"""
Receipt Sinks

Carry vendor receipts to the receipt aggregator.

    InProcessReceiptSink: calls DeliveryService.record_receipt directly
    HttpReceiptSink: posts {recordId, status} to the delivery-receipt
        webhook, the way an external vendor would call back
"""

import logging
from typing import Optional

import httpx

from campaign_engine.core.domain.delivery import Receipt
from campaign_engine.core.ports.sender import ReceiptSink, SenderException
from campaign_engine.core.services.delivery_service import (
    DeliveryService,
    UnknownRecordError,
)


logger = logging.getLogger(__name__)


class InProcessReceiptSink(ReceiptSink):
    """Applies receipts without leaving the process"""

    def __init__(self, delivery: DeliveryService):
        self.delivery = delivery

    async def deliver(self, receipt: Receipt) -> None:
        try:
            await self.delivery.record_receipt(receipt.record_id, receipt.outcome)
        except UnknownRecordError:
            # already logged by the aggregator
            pass


class HttpReceiptSink(ReceiptSink):
    """
    Posts receipts to the service's own delivery-receipt endpoint

    Example:
        >>> sink = HttpReceiptSink("http://localhost:8000/api/v1/delivery-receipt")
        >>> await sink.deliver(Receipt(record_id, DeliveryStatus.SENT))
    """

    def __init__(
        self,
        callback_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize HTTP sink

        Args:
            callback_url: Full URL of the delivery-receipt endpoint
            timeout: Request timeout in seconds
            client: Pre-built client (tests pass one with a mock transport)
        """
        self.callback_url = callback_url
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def deliver(self, receipt: Receipt) -> None:
        """
        Post one receipt

        Raises:
            ReceiptDeliveryError: If the request fails or is rejected
        """
        payload = {
            "recordId": str(receipt.record_id),
            "status": receipt.outcome.value,
        }

        try:
            response = await self.client.post(self.callback_url, json=payload)
        except httpx.HTTPError as e:
            raise ReceiptDeliveryError(f"Receipt callback failed: {e}") from e

        if response.status_code == 404:
            logger.warning(f"Receipt callback rejected unknown record {receipt.record_id}")
            return

        if response.status_code >= 400:
            raise ReceiptDeliveryError(
                f"Receipt callback returned {response.status_code}: {response.text}"
            )

    async def close(self) -> None:
        await self.client.aclose()


class ReceiptDeliveryError(SenderException):
    """Raised when a receipt could not be handed to the aggregator"""
    pass
