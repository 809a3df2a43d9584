"""Domain enums for type safety and consistency."""

from enum import Enum


class SubscriptionState(str, Enum):
    """Lifecycle state of a subscription.

    Derived from the persisted ``is_active`` / ``is_paused`` flags.
    """

    ACTIVE = "ACTIVE"  # Billing normally
    PAUSED = "PAUSED"  # Collection refused until resumed
    CANCELLED = "CANCELLED"  # Terminal


class RecordKind(str, Enum):
    """Kinds of records kept in the ledger store."""

    REGISTRY = "registry"
    PLAN = "plan"
    SUBSCRIPTION = "subscription"
    MINT = "mint"
    HOLDING_ACCOUNT = "holding_account"
