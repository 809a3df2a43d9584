"""Permissionless payment processor.

Periodically sweeps the store for subscriptions inside their collection
window and collects each one. Failures are per subscription: a rejected
collection is reported and the sweep moves on.
"""

from __future__ import annotations

import asyncio
import contextlib

from pydantic import BaseModel, Field

from ..domain.aggregates import Subscription
from ..domain.exceptions import RecurpayError
from ..ports.clock import ClockPort
from ..ports.logger import LoggerPort
from .queries import BillingQueries
from .use_cases import CollectPaymentRequest, CollectPaymentResponse, CollectPaymentUseCase


class CollectionFailure(BaseModel):
    subscription_address: str
    code: str
    message: str


class SweepReport(BaseModel):
    """Outcome of one sweep."""

    started_at: int
    candidates: int = 0
    collected: list[CollectPaymentResponse] = Field(default_factory=list)
    failed: list[CollectionFailure] = Field(default_factory=list)

    @property
    def total_collected(self) -> int:
        return sum(payment.amount for payment in self.collected)


class PaymentProcessor:
    """Collects every due subscription, one transaction each."""

    def __init__(
        self,
        queries: BillingQueries,
        collect: CollectPaymentUseCase,
        clock: ClockPort,
        *,
        caller: str = "payment-processor",
        batch_size: int = 100,
        interval_seconds: float = 60.0,
        logger: LoggerPort | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            queries: Read side used to find due subscriptions
            collect: Collection use case run for each candidate
            clock: Time source for due checks
            caller: Identity recorded as the trigger of each collection
            batch_size: Maximum collections per sweep
            interval_seconds: Pause between sweeps when running in the background
            logger: Logger for sweep results
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._queries = queries
        self._collect = collect
        self._clock = clock
        self._caller = caller
        self._batch_size = batch_size
        self._interval = interval_seconds
        self._logger = logger or self._create_default_logger()

        # Failed collections by subscription address, keyed to the due time that failed
        self._failures: dict[str, int] = {}

        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from ..infrastructure.simple_logger import SimpleLogger

        return SimpleLogger("recurpay.application.processor")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _failed_before(self, subscription: Subscription) -> bool:
        return self._failures.get(str(subscription.address)) == subscription.next_payment_due

    async def run_once(self) -> SweepReport:
        """Collect every subscription due now, up to the batch size.

        Subscriptions that failed at their current due time go to the back of
        the queue, so a batch is only spent on them once fresh candidates run out.
        """
        now = self._clock.timestamp()
        due = await self._queries.list_due_subscriptions(now)
        fresh = [sub for sub in due if not self._failed_before(sub)]
        retries = [sub for sub in due if self._failed_before(sub)]
        batch = (fresh + retries)[: self._batch_size]

        still_due = {str(sub.address) for sub in due}
        self._failures = {
            address: due_at for address, due_at in self._failures.items() if address in still_due
        }

        report = SweepReport(started_at=now, candidates=len(batch))

        for subscription in batch:
            address = str(subscription.address)
            try:
                response = await self._collect.execute(
                    CollectPaymentRequest(
                        subscriber=str(subscription.subscriber),
                        plan=str(subscription.plan),
                        subscription_address=address,
                        caller=self._caller,
                    )
                )
            except RecurpayError as e:
                self._failures[address] = subscription.next_payment_due
                report.failed.append(
                    CollectionFailure(subscription_address=address, code=e.code, message=e.message)
                )
                continue
            self._failures.pop(address, None)
            report.collected.append(response)

        if report.candidates:
            self._logger.info(
                "Payment sweep finished",
                candidates=report.candidates,
                collected=len(report.collected),
                failed=len(report.failed),
                amount=report.total_collected,
            )
        return report

    async def start(self) -> None:
        """Run sweeps in the background until :meth:`stop` is called."""
        if self.is_running:
            self._logger.warning("Payment processor already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self._logger.info("Started payment processor", interval=f"{self._interval}s")

    async def stop(self) -> None:
        """Stop the background loop, cancelling it if it does not exit promptly."""
        self._stop_event.set()

        if self._task and not self._task.done():
            try:
                await asyncio.wait_for(self._task, timeout=2.0)
            except TimeoutError:
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task

        self._logger.info("Stopped payment processor")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self._logger.error(f"Error in payment sweep: {e}")

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
