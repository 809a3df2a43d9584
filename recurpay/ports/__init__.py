"""Ports layer - Interfaces to the substrate the billing engine runs on."""

from .clock import ClockPort
from .event_sink import EventSinkPort
from .logger import LoggerPort
from .store import LedgerStorePort, TransactionPort
from .token_program import TokenProgramPort

__all__ = [
    "ClockPort",
    "EventSinkPort",
    "LedgerStorePort",
    "LoggerPort",
    "TokenProgramPort",
    "TransactionPort",
]
