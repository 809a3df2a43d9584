"""Domain events emitted by billing state changes.

Events are immutable facts for external observers and indexers. They are
published after the transaction that produced them commits and are never used
for internal control flow.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DomainEvent(BaseModel):
    """Base class for domain events."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique event identifier",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event was recorded",
    )
    aggregate_id: str = Field(..., description="Address of the record that emitted the event")
    aggregate_type: str = Field(..., description="Type of the record")
    event_type: str = Field(..., description="Type of the event")
    event_version: str = Field(default="1.0", description="Version of the event schema")

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready representation for sinks."""
        return self.model_dump(mode="json")


class RegistryInitialized(DomainEvent):
    """Emitted once when the global registry is created."""

    owner: str = Field(..., description="Registry authority")

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "RegistryInitialized"
        data["aggregate_type"] = "Registry"
        super().__init__(**data)


class PlanCreated(DomainEvent):
    """Emitted when a provider publishes a plan."""

    provider: str
    plan_id: str
    price_per_period: int
    period_duration_seconds: int
    payment_token: str
    custody_account: str

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "PlanCreated"
        data["aggregate_type"] = "Plan"
        super().__init__(**data)


class PlanUpdated(DomainEvent):
    """Emitted when a provider changes plan terms or availability."""

    provider: str
    plan_id: str
    changes: dict[str, Any] = Field(default_factory=dict)

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "PlanUpdated"
        data["aggregate_type"] = "Plan"
        super().__init__(**data)


class SubscriptionCreated(DomainEvent):
    """Emitted when a subscriber enrolls in a plan."""

    subscriber: str
    plan: str
    start_time: int
    next_payment_due: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "SubscriptionCreated"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class SubscriptionPaused(DomainEvent):
    subscriber: str
    plan: str
    paused_at: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "SubscriptionPaused"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class SubscriptionResumed(DomainEvent):
    subscriber: str
    plan: str
    resumed_at: int
    next_payment_due: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "SubscriptionResumed"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class SubscriptionCancelled(DomainEvent):
    subscriber: str
    plan: str
    cancelled_at: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "SubscriptionCancelled"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class CollectionApproved(DomainEvent):
    """Emitted when a subscriber delegates an allowance to their subscription."""

    subscriber: str
    plan: str
    payment_account: str
    allowance: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "CollectionApproved"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class PaymentProcessed(DomainEvent):
    """Emitted for every successful collection.

    ``nonce`` makes each collection distinguishable even when amount and
    timestamps coincide.
    """

    subscriber: str
    plan: str
    amount: int
    payment_number: int
    nonce: int
    next_payment_due: int
    collected_at: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "PaymentProcessed"
        data["aggregate_type"] = "Subscription"
        super().__init__(**data)


class FundsWithdrawn(DomainEvent):
    """Emitted when a provider moves collected funds out of custody."""

    provider: str
    plan_id: str
    amount: int
    destination: str
    remaining_balance: int

    def __init__(self, **data: Any) -> None:
        data["event_type"] = "FundsWithdrawn"
        data["aggregate_type"] = "Plan"
        super().__init__(**data)
