"""
Centralized logging configuration for recurpay.
Prevents duplicate logs and controls verbosity per layer.
"""

import logging
import os
import sys


def setup_logging(log_level: str | None = None) -> None:
    """
    Configure logging for the billing program.

    Args:
        log_level: Logging level (INFO, WARNING, ERROR, DEBUG); defaults to
            the ``RECURPAY_LOG_LEVEL`` environment variable, then INFO
    """
    if log_level is None:
        log_level = os.getenv("RECURPAY_LOG_LEVEL", "INFO")
    log_level = log_level.upper()

    # Clear any existing handlers
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    # Create single stream handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )
    )

    root.setLevel(log_level)
    root.addHandler(handler)

    # Store commits are chatty; keep them at DEBUG only when asked for
    if log_level != "DEBUG":
        logging.getLogger("recurpay.infrastructure.store").setLevel(logging.WARNING)

    logging.getLogger("recurpay.application").setLevel(log_level)
    logging.getLogger("recurpay.events").setLevel(log_level)
