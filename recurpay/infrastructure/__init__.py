"""Infrastructure layer - Concrete implementations of ports."""

from .config import BillingConfig
from .event_sinks import FanOutEventSink, InMemoryEventSink, LoggingEventSink
from .in_memory_store import InMemoryLedgerStore, InMemoryTransaction
from .logging_config import setup_logging
from .simple_logger import SimpleLogger
from .system_clock import ManualClock, SystemClock
from .token_program import InMemoryTokenProgram

__all__ = [
    "BillingConfig",
    "FanOutEventSink",
    "InMemoryEventSink",
    "InMemoryLedgerStore",
    "InMemoryTokenProgram",
    "InMemoryTransaction",
    "LoggingEventSink",
    "ManualClock",
    "SimpleLogger",
    "SystemClock",
    "setup_logging",
]
