"""Bootstrap module for wiring a billing program from in-memory adapters."""

from __future__ import annotations

from ..application.program import BillingProgram
from ..ports.clock import ClockPort
from ..ports.event_sink import EventSinkPort
from ..ports.logger import LoggerPort
from .config import BillingConfig
from .event_sinks import InMemoryEventSink
from .in_memory_store import InMemoryLedgerStore
from .logging_config import setup_logging
from .system_clock import SystemClock
from .token_program import InMemoryTokenProgram


def create_in_memory_program(
    config: BillingConfig | None = None,
    *,
    clock: ClockPort | None = None,
    event_sink: EventSinkPort | None = None,
    logger: LoggerPort | None = None,
    configure_logging: bool = True,
) -> BillingProgram:
    """Build a fully in-process billing program.

    Args:
        config: Program settings; defaults to :meth:`BillingConfig.from_env`
        clock: Time source; defaults to the system clock
        event_sink: Where committed events go; defaults to an in-memory sink
        logger: Logger shared by the use cases and the processor
        configure_logging: Install the stdout handler at ``config.log_level``

    Returns:
        A ready-to-use :class:`BillingProgram`
    """
    config = config or BillingConfig.from_env()
    if configure_logging:
        setup_logging(config.log_level)

    return BillingProgram(
        store=InMemoryLedgerStore(logger=logger),
        token_program=InMemoryTokenProgram(),
        clock=clock or SystemClock(),
        event_sink=event_sink or InMemoryEventSink(),
        config=config,
        logger=logger,
    )
