"""Billing aggregates following Domain-Driven Design principles.

The registry, plans and subscriptions enforce their own invariants. Every
counter mutation goes through the checked arithmetic in :mod:`.ledger`, so an
overflow raises before the aggregate is changed.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from .constants import (
    DEFAULT_IDENTITY,
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PERIOD_DURATION,
    MAX_PLAN_ID_LENGTH,
    MIN_PERIOD_DURATION,
    U32_MAX,
    U64_MAX,
)
from .enums import RecordKind, SubscriptionState
from .events import (
    CollectionApproved,
    FundsWithdrawn,
    PaymentProcessed,
    PlanCreated,
    PlanUpdated,
    RegistryInitialized,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionPaused,
    SubscriptionResumed,
)
from .exceptions import (
    DescriptionTooLongError,
    InvalidMaxSubscribersError,
    InvalidPeriodError,
    InvalidPlanIdError,
    InvalidPriceError,
    NameTooLongError,
    PlanAtCapacityError,
    PlanIdTooLongError,
    PlanInactiveError,
    SubscriptionInactiveError,
    SubscriptionNotPausedError,
    SubscriptionPausedError,
    UnauthorizedError,
)
from .ledger import (
    checked_add_timestamp,
    checked_add_u32,
    checked_add_u64,
    checked_sub,
)
from .models import LedgerRecord
from .value_objects import Address, Identity, format_period_duration


class Registry(LedgerRecord):
    """Global counters of providers and subscriptions.

    Business Invariants:
    - Exactly one instance per deployment
    - Counters never decrease and never wrap
    """

    kind: ClassVar[RecordKind] = RecordKind.REGISTRY

    owner: Identity
    total_providers: int = Field(default=0, ge=0, le=U64_MAX)
    total_subscriptions: int = Field(default=0, ge=0, le=U64_MAX)
    created_at: int

    @classmethod
    def initialize(cls, *, address: Address, owner: Identity, now: int) -> Registry:
        """Create the registry with zeroed counters."""
        if owner == DEFAULT_IDENTITY:
            raise UnauthorizedError("Registry owner cannot be the default identity")

        registry = cls(address=address, owner=owner, created_at=now)
        registry._record_event(RegistryInitialized(aggregate_id=str(address), owner=str(owner)))
        return registry

    def record_provider(self) -> None:
        self.total_providers = checked_add_u64(self.total_providers, 1, field="total_providers")

    def record_subscription(self) -> None:
        self.total_subscriptions = checked_add_u64(
            self.total_subscriptions, 1, field="total_subscriptions"
        )


class Plan(LedgerRecord):
    """A provider-published subscription offering.

    Business Invariants:
    - ``current_subscribers`` never exceeds ``max_subscribers`` when set
    - ``total_revenue`` only grows, and only through payment collection
    - Only the owner may change terms
    """

    kind: ClassVar[RecordKind] = RecordKind.PLAN

    # Identity
    owner: Identity
    plan_id: str

    # Terms
    name: str
    description: str
    price_per_period: int = Field(gt=0, le=U64_MAX)
    period_duration_seconds: int = Field(gt=0)
    payment_token: Address
    max_subscribers: int | None = Field(default=None, ge=0, le=U32_MAX)

    # Custody
    custody_address: Address

    # State
    current_subscribers: int = Field(default=0, ge=0, le=U32_MAX)
    total_revenue: int = Field(default=0, ge=0, le=U64_MAX)
    is_active: bool = True
    created_at: int

    @staticmethod
    def validate_plan_id(plan_id: str) -> None:
        if len(plan_id.encode()) > MAX_PLAN_ID_LENGTH:
            raise PlanIdTooLongError(plan_id, MAX_PLAN_ID_LENGTH)
        if not plan_id:
            raise InvalidPlanIdError(plan_id)

    @staticmethod
    def validate_terms(
        *,
        name: str | None = None,
        description: str | None = None,
        price_per_period: int | None = None,
        period_duration_seconds: int | None = None,
        min_period: int = MIN_PERIOD_DURATION,
        max_period: int = MAX_PERIOD_DURATION,
    ) -> None:
        """Validate whichever terms are supplied, in a fixed order."""
        if name is not None and len(name.encode()) > MAX_NAME_LENGTH:
            raise NameTooLongError(MAX_NAME_LENGTH)
        if description is not None and len(description.encode()) > MAX_DESCRIPTION_LENGTH:
            raise DescriptionTooLongError(MAX_DESCRIPTION_LENGTH)
        if price_per_period is not None and not 0 < price_per_period <= U64_MAX:
            raise InvalidPriceError(price_per_period)
        if period_duration_seconds is not None and not (
            min_period <= period_duration_seconds <= max_period
        ):
            raise InvalidPeriodError(period_duration_seconds, min_period, max_period)

    @classmethod
    def create(
        cls,
        *,
        address: Address,
        owner: Identity,
        plan_id: str,
        name: str,
        description: str,
        price_per_period: int,
        period_duration_seconds: int,
        payment_token: Address,
        custody_address: Address,
        max_subscribers: int | None,
        now: int,
        min_period: int = MIN_PERIOD_DURATION,
        max_period: int = MAX_PERIOD_DURATION,
    ) -> Plan:
        """Validate terms and build an active plan with zeroed counters."""
        cls.validate_plan_id(plan_id)
        cls.validate_terms(
            name=name,
            description=description,
            price_per_period=price_per_period,
            period_duration_seconds=period_duration_seconds,
            min_period=min_period,
            max_period=max_period,
        )
        if max_subscribers is not None and not 0 <= max_subscribers <= U32_MAX:
            raise InvalidMaxSubscribersError(max_subscribers, 0)

        plan = cls(
            address=address,
            owner=owner,
            plan_id=plan_id,
            name=name,
            description=description,
            price_per_period=price_per_period,
            period_duration_seconds=period_duration_seconds,
            payment_token=payment_token,
            custody_address=custody_address,
            max_subscribers=max_subscribers,
            created_at=now,
        )
        plan._record_event(
            PlanCreated(
                aggregate_id=str(address),
                provider=str(owner),
                plan_id=plan_id,
                price_per_period=price_per_period,
                period_duration_seconds=period_duration_seconds,
                payment_token=str(payment_token),
                custody_account=str(custody_address),
            )
        )
        return plan

    @property
    def is_at_capacity(self) -> bool:
        return self.max_subscribers is not None and self.current_subscribers >= self.max_subscribers

    @property
    def billing_period(self) -> str:
        """Period as shown in listings, e.g. ``"30 days"``."""
        return format_period_duration(self.period_duration_seconds)

    def ensure_owned_by(self, provider: Identity) -> None:
        if self.owner != provider:
            raise UnauthorizedError(
                "Caller is not the plan provider",
                details={"plan": str(self.address), "caller": str(provider)},
            )

    def ensure_active(self) -> None:
        if not self.is_active:
            raise PlanInactiveError(str(self.address))

    def update(
        self,
        *,
        name: str | None = None,
        description: str | None = None,
        price_per_period: int | None = None,
        max_subscribers: int | None = None,
        clear_max_subscribers: bool = False,
        is_active: bool | None = None,
    ) -> dict[str, Any]:
        """Apply provider changes and return the fields that changed.

        Business Rules:
        - Existing subscriptions keep billing after deactivation
        - A cap cannot be set below the current subscriber count
        """
        self.validate_terms(name=name, description=description, price_per_period=price_per_period)
        if max_subscribers is not None and not (
            self.current_subscribers <= max_subscribers <= U32_MAX
        ):
            raise InvalidMaxSubscribersError(max_subscribers, self.current_subscribers)

        requested: dict[str, Any] = {
            "name": name,
            "description": description,
            "price_per_period": price_per_period,
            "max_subscribers": max_subscribers,
            "is_active": is_active,
        }
        changes: dict[str, Any] = {}
        for field_name, value in requested.items():
            if value is not None and getattr(self, field_name) != value:
                changes[field_name] = value
        if clear_max_subscribers and max_subscribers is None and self.max_subscribers is not None:
            changes["max_subscribers"] = None

        for field_name, value in changes.items():
            setattr(self, field_name, value)

        if changes:
            self._record_event(
                PlanUpdated(
                    aggregate_id=str(self.address),
                    provider=str(self.owner),
                    plan_id=self.plan_id,
                    changes=changes,
                )
            )
        return changes

    def add_subscriber(self) -> None:
        """Count a new subscriber; the plan must be active and below its cap."""
        self.ensure_active()
        if self.is_at_capacity:
            raise PlanAtCapacityError(str(self.address), self.max_subscribers or 0)
        self.current_subscribers = checked_add_u32(
            self.current_subscribers, 1, field="current_subscribers"
        )

    def remove_subscriber(self) -> None:
        self.current_subscribers = checked_sub(
            self.current_subscribers, 1, field="current_subscribers"
        )

    def apply_revenue(self, total_revenue: int) -> None:
        """Store a revenue total computed by the payment engine."""
        if total_revenue < self.total_revenue:
            raise ValueError("Plan revenue cannot decrease")
        self.total_revenue = total_revenue

    def record_withdrawal(
        self, *, amount: int, destination: Address, remaining_balance: int
    ) -> None:
        """Record a payout from custody; balances themselves live in the token program."""
        self._record_event(
            FundsWithdrawn(
                aggregate_id=str(self.address),
                provider=str(self.owner),
                plan_id=self.plan_id,
                amount=amount,
                destination=str(destination),
                remaining_balance=remaining_balance,
            )
        )

    def __str__(self) -> str:
        return f"Plan({self.owner}/{self.plan_id} - {'active' if self.is_active else 'inactive'})"


class Subscription(LedgerRecord):
    """A subscriber's membership in a plan and its billing schedule.

    Business Invariants:
    - Exactly one of active-unpaused, paused, cancelled holds
    - Cancelled is terminal and the record is never deleted
    - ``payment_nonce`` grows by exactly one per successful collection
    """

    kind: ClassVar[RecordKind] = RecordKind.SUBSCRIPTION

    # Identity
    subscriber: Identity
    plan: Address

    # Schedule
    start_time: int
    next_payment_due: int

    # State
    is_active: bool = True
    is_paused: bool = False
    paused_at: int | None = None
    cancelled_at: int | None = None

    # Totals
    total_payments_made: int = Field(default=0, ge=0, le=U32_MAX)
    total_amount_paid: int = Field(default=0, ge=0, le=U64_MAX)
    payment_nonce: int = Field(default=0, ge=0, le=U64_MAX)

    # Account the subscriber approved for collection
    payment_account: Address | None = None

    @classmethod
    def open(cls, *, address: Address, subscriber: Identity, plan: Plan, now: int) -> Subscription:
        """Start a subscription whose first payment is due one period from now."""
        next_due = checked_add_timestamp(
            now, plan.period_duration_seconds, field="next_payment_due"
        )
        subscription = cls(
            address=address,
            subscriber=subscriber,
            plan=plan.address,
            start_time=now,
            next_payment_due=next_due,
        )
        subscription._record_event(
            SubscriptionCreated(
                aggregate_id=str(address),
                subscriber=str(subscriber),
                plan=str(plan.address),
                start_time=now,
                next_payment_due=next_due,
            )
        )
        return subscription

    @property
    def state(self) -> SubscriptionState:
        if not self.is_active:
            return SubscriptionState.CANCELLED
        if self.is_paused:
            return SubscriptionState.PAUSED
        return SubscriptionState.ACTIVE

    def ensure_owned_by(self, subscriber: Identity, plan: Address) -> None:
        """Verify the record belongs to ``subscriber`` and ``plan``."""
        if self.subscriber != subscriber or self.plan != plan:
            raise UnauthorizedError(
                "Subscription does not belong to the caller and plan",
                details={"subscription": str(self.address), "caller": str(subscriber)},
            )

    def ensure_collectible(self) -> None:
        if not self.is_active:
            raise SubscriptionInactiveError(str(self.address))
        if self.is_paused:
            raise SubscriptionPausedError(str(self.address))

    def pause(self, now: int) -> None:
        """Pause billing.

        Business Rules:
        - Only an active, unpaused subscription can be paused
        """
        self.ensure_collectible()

        self.is_paused = True
        self.paused_at = now
        self._record_event(
            SubscriptionPaused(
                aggregate_id=str(self.address),
                subscriber=str(self.subscriber),
                plan=str(self.plan),
                paused_at=now,
            )
        )

    def resume(self, now: int) -> None:
        """Resume billing without moving the due date.

        A subscription whose due date passed while paused is collectible
        immediately after resuming.
        """
        if not self.is_active:
            raise SubscriptionInactiveError(str(self.address))
        if not self.is_paused:
            raise SubscriptionNotPausedError(str(self.address))

        self.is_paused = False
        self.paused_at = None
        self._record_event(
            SubscriptionResumed(
                aggregate_id=str(self.address),
                subscriber=str(self.subscriber),
                plan=str(self.plan),
                resumed_at=now,
                next_payment_due=self.next_payment_due,
            )
        )

    def cancel(self, now: int) -> None:
        """Cancel permanently.

        Business Rules:
        - Terminal; a second cancel fails so the plan count drops once
        - Allowed from active or paused
        """
        if not self.is_active:
            raise SubscriptionInactiveError(str(self.address))

        self.is_active = False
        self.is_paused = False
        self.cancelled_at = now
        self._record_event(
            SubscriptionCancelled(
                aggregate_id=str(self.address),
                subscriber=str(self.subscriber),
                plan=str(self.plan),
                cancelled_at=now,
            )
        )

    def approve_payment_account(self, account: Address, allowance: int) -> None:
        if not self.is_active:
            raise SubscriptionInactiveError(str(self.address))

        self.payment_account = account
        self._record_event(
            CollectionApproved(
                aggregate_id=str(self.address),
                subscriber=str(self.subscriber),
                plan=str(self.plan),
                payment_account=str(account),
                allowance=allowance,
            )
        )

    def apply_payment(
        self,
        *,
        amount: int,
        next_payment_due: int,
        total_payments_made: int,
        total_amount_paid: int,
        payment_nonce: int,
        now: int,
    ) -> None:
        """Store totals computed by the payment engine and record the event."""
        if payment_nonce != self.payment_nonce + 1:
            raise ValueError("Payment nonce must advance by exactly one")

        self.next_payment_due = next_payment_due
        self.total_payments_made = total_payments_made
        self.total_amount_paid = total_amount_paid
        self.payment_nonce = payment_nonce
        self._record_event(
            PaymentProcessed(
                aggregate_id=str(self.address),
                subscriber=str(self.subscriber),
                plan=str(self.plan),
                amount=amount,
                payment_number=total_payments_made,
                nonce=payment_nonce,
                next_payment_due=next_payment_due,
                collected_at=now,
            )
        )

    def __str__(self) -> str:
        return f"Subscription({self.subscriber} -> {self.plan.short} - {self.state.value})"
