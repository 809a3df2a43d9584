"""recurpay - Recurring pull-based subscription billing."""

from .application.program import BillingProgram
from .infrastructure.bootstrap import create_in_memory_program
from .infrastructure.config import BillingConfig

__all__ = ["BillingConfig", "BillingProgram", "create_in_memory_program"]
__version__ = "0.1.0"
