"""
Simulated Vendor Sender

Stands in for a real messaging vendor. No messages leave the process;
each send becomes an asyncio task that waits, picks an outcome and
reports it as a receipt.

Usage:
    from campaign_engine.adapters.vendors.simulated_sender import SimulatedVendorSender

    sender = SimulatedVendorSender(success_rate=0.9)
    sender.bind(InProcessReceiptSink(delivery_service))
    sender.send(record, customer)
"""

import asyncio
import logging
import random
from typing import Optional, Set, Tuple

from campaign_engine.core.domain.customer import Customer
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus, Receipt
from campaign_engine.core.ports.sender import ReceiptSink, SenderException, SenderPort


logger = logging.getLogger(__name__)


class SimulatedVendorSender(SenderPort):
    """
    Vendor simulation with random latency and outcome

    Per send:
        1. sleep uniform(dispatch_jitter) seconds
        2. SENT with probability success_rate, otherwise FAILED
        3. sleep uniform(response_jitter) seconds
        4. deliver Receipt(record_id, outcome) to the bound sink

    Args:
        success_rate: Probability of a SENT outcome (0.0 to 1.0)
        dispatch_jitter: (min, max) seconds before the outcome is decided
        response_jitter: (min, max) seconds before the receipt is delivered
        rng: Random source, seed it for reproducible runs
    """

    def __init__(
        self,
        success_rate: float = 0.9,
        dispatch_jitter: Tuple[float, float] = (0.0, 5.0),
        response_jitter: Tuple[float, float] = (1.0, 3.0),
        rng: Optional[random.Random] = None,
    ):
        self.success_rate = success_rate
        self.dispatch_jitter = dispatch_jitter
        self.response_jitter = response_jitter
        self.rng = rng or random.Random()
        self.sink: Optional[ReceiptSink] = None
        self._tasks: Set[asyncio.Task] = set()

        logger.info(
            f"Simulated vendor initialized (success_rate={success_rate}, "
            f"dispatch_jitter={dispatch_jitter}, response_jitter={response_jitter})"
        )

    def bind(self, sink: ReceiptSink) -> None:
        self.sink = sink

    def send(self, record: DeliveryRecord, customer: Customer) -> None:
        """Schedule the simulated delivery and return immediately"""
        if self.sink is None:
            raise SenderException("No receipt sink bound to the sender")

        task = asyncio.create_task(self._deliver(record))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, record: DeliveryRecord) -> None:
        await asyncio.sleep(self.rng.uniform(*self.dispatch_jitter))

        success = self.rng.random() < self.success_rate
        outcome = DeliveryStatus.SENT if success else DeliveryStatus.FAILED

        await asyncio.sleep(self.rng.uniform(*self.response_jitter))

        logger.debug(f"Simulated {outcome.value} for record {record.id}")

        try:
            await self.sink.deliver(Receipt(record_id=record.id, outcome=outcome))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # record stays PENDING; nothing retries it
            logger.error(f"Receipt for record {record.id} was not delivered: {e}")

    @property
    def in_flight(self) -> int:
        """Sends whose receipt has not been delivered yet"""
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding sends"""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self.sink is not None:
            await self.sink.close()

        logger.info(f"Simulated vendor closed ({len(pending)} sends cancelled)")

    def get_name(self) -> str:
        return "simulated"
