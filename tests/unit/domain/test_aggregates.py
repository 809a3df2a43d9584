"""Tests for the registry, plan and subscription aggregates."""

import pytest

from recurpay.domain.addressing import AddressBook
from recurpay.domain.aggregates import Registry
from recurpay.domain.constants import DEFAULT_IDENTITY, U32_MAX
from recurpay.domain.enums import SubscriptionState
from recurpay.domain.exceptions import (
    ArithmeticOverflowError,
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
from recurpay.domain.value_objects import Identity
from tests.builders import DAY, PRICE, PlanBuilder, open_subscription


class TestRegistry:
    """Test Registry aggregate."""

    def test_initialize(self):
        registry = Registry.initialize(
            address=AddressBook().registry(), owner=Identity(value="admin"), now=10
        )

        assert registry.total_providers == 0
        assert registry.total_subscriptions == 0
        assert registry.created_at == 10
        events = registry.get_uncommitted_events()
        assert [e.event_type for e in events] == ["RegistryInitialized"]

    def test_default_identity_rejected(self):
        with pytest.raises(UnauthorizedError):
            Registry.initialize(
                address=AddressBook().registry(), owner=Identity(value=DEFAULT_IDENTITY), now=0
            )

    def test_counters_are_checked(self):
        registry = Registry.initialize(
            address=AddressBook().registry(), owner=Identity(value="admin"), now=0
        )
        registry.record_provider()
        registry.record_subscription()
        assert (registry.total_providers, registry.total_subscriptions) == (1, 1)

        registry.total_providers = 2**64 - 1
        with pytest.raises(ArithmeticOverflowError):
            registry.record_provider()
        assert registry.total_providers == 2**64 - 1


class TestPlanCreation:
    """Test plan validation and creation."""

    def test_new_plan_starts_empty_and_active(self):
        plan = PlanBuilder().build()

        assert plan.current_subscribers == 0
        assert plan.total_revenue == 0
        assert plan.is_active
        assert plan.custody_address != plan.address
        event = plan.get_uncommitted_events()[0]
        assert event.event_type == "PlanCreated"
        assert event.custody_account == str(plan.custody_address)

    def test_validation_order(self):
        # Every field is invalid; the plan id is reported first
        with pytest.raises(PlanIdTooLongError):
            PlanBuilder.validate_all(plan_id="p" * 33, name="n" * 65, price=0, period=1)

    @pytest.mark.parametrize(
        ("kwargs", "error"),
        [
            ({"plan_id": ""}, InvalidPlanIdError),
            ({"plan_id": "é" * 17}, PlanIdTooLongError),
            ({"name": "n" * 65}, NameTooLongError),
            ({"description": "d" * 257}, DescriptionTooLongError),
            ({"price": 0}, InvalidPriceError),
            ({"period": 3599}, InvalidPeriodError),
            ({"period": 31_536_001}, InvalidPeriodError),
        ],
    )
    def test_invalid_terms(self, kwargs, error):
        with pytest.raises(error):
            PlanBuilder.validate_all(**kwargs)

    def test_boundary_terms_accepted(self):
        PlanBuilder.validate_all(
            plan_id="p" * 32, name="n" * 64, description="d" * 256, period=3600
        )
        PlanBuilder.validate_all(period=31_536_000)


class TestPlanUpdate:
    """Test plan updates."""

    def test_update_reports_changed_fields(self):
        plan = PlanBuilder().build()
        plan.mark_events_committed()

        changes = plan.update(price_per_period=2 * PRICE, name="Pro", is_active=True)

        assert changes == {"price_per_period": 2 * PRICE}
        assert plan.price_per_period == 2 * PRICE
        assert plan.get_uncommitted_events()[0].changes == changes

    def test_no_change_records_no_event(self):
        plan = PlanBuilder().build()
        plan.mark_events_committed()

        assert plan.update(name="Pro") == {}
        assert plan.get_uncommitted_events() == []

    def test_cap_below_current_count_rejected(self):
        plan = PlanBuilder().build()
        plan.add_subscriber()
        plan.add_subscriber()

        with pytest.raises(InvalidMaxSubscribersError):
            plan.update(max_subscribers=1)
        plan.update(max_subscribers=2)
        assert plan.is_at_capacity

    def test_clear_cap(self):
        plan = PlanBuilder().with_max_subscribers(1).build()
        changes = plan.update(clear_max_subscribers=True)
        assert changes == {"max_subscribers": None}
        assert plan.max_subscribers is None

    def test_update_validates_terms(self):
        plan = PlanBuilder().build()
        with pytest.raises(InvalidPriceError):
            plan.update(price_per_period=0)
        assert plan.price_per_period == PRICE

    def test_only_owner(self):
        plan = PlanBuilder().build()
        plan.ensure_owned_by(Identity(value="acme"))
        with pytest.raises(UnauthorizedError):
            plan.ensure_owned_by(Identity(value="mallory"))


class TestPlanCapacity:
    """Test subscriber counting."""

    def test_capacity_enforced(self):
        plan = PlanBuilder().with_max_subscribers(1).build()
        plan.add_subscriber()

        with pytest.raises(PlanAtCapacityError):
            plan.add_subscriber()
        assert plan.current_subscribers == 1

    def test_zero_cap_blocks_everyone(self):
        plan = PlanBuilder().with_max_subscribers(0).build()
        with pytest.raises(PlanAtCapacityError):
            plan.add_subscriber()

    def test_inactive_plan_rejects_subscribers(self):
        plan = PlanBuilder().build()
        plan.update(is_active=False)
        with pytest.raises(PlanInactiveError):
            plan.add_subscriber()

    def test_remove_below_zero_is_overflow(self):
        plan = PlanBuilder().build()
        with pytest.raises(ArithmeticOverflowError):
            plan.remove_subscriber()

    def test_u32_counter_overflow(self):
        plan = PlanBuilder().build()
        plan.current_subscribers = U32_MAX
        with pytest.raises(ArithmeticOverflowError):
            plan.add_subscriber()

    def test_revenue_never_decreases(self):
        plan = PlanBuilder().build()
        plan.apply_revenue(PRICE)
        with pytest.raises(ValueError):
            plan.apply_revenue(0)


class TestSubscriptionStateMachine:
    """Test subscription lifecycle transitions."""

    def test_open(self):
        plan = PlanBuilder().build()
        sub = open_subscription(plan, now=100)

        assert sub.state == SubscriptionState.ACTIVE
        assert sub.start_time == 100
        assert sub.next_payment_due == 100 + DAY
        assert sub.payment_nonce == 0
        assert sub.get_uncommitted_events()[0].event_type == "SubscriptionCreated"

    def test_open_due_date_overflow(self):
        plan = PlanBuilder().build()
        with pytest.raises(ArithmeticOverflowError):
            open_subscription(plan, now=2**63 - 10)

    def test_pause_and_resume(self):
        sub = open_subscription(PlanBuilder().build())
        due = sub.next_payment_due

        sub.pause(now=50)
        assert sub.state == SubscriptionState.PAUSED
        assert sub.paused_at == 50

        sub.resume(now=5 * DAY)
        assert sub.state == SubscriptionState.ACTIVE
        assert sub.paused_at is None
        assert sub.next_payment_due == due

        types = [e.event_type for e in sub.get_uncommitted_events()]
        assert types == ["SubscriptionCreated", "SubscriptionPaused", "SubscriptionResumed"]

    def test_pause_twice(self):
        sub = open_subscription(PlanBuilder().build())
        sub.pause(now=1)
        with pytest.raises(SubscriptionPausedError):
            sub.pause(now=2)

    def test_resume_when_not_paused(self):
        sub = open_subscription(PlanBuilder().build())
        with pytest.raises(SubscriptionNotPausedError):
            sub.resume(now=1)

    def test_cancel_from_paused(self):
        sub = open_subscription(PlanBuilder().build())
        sub.pause(now=1)
        sub.cancel(now=2)

        assert sub.state == SubscriptionState.CANCELLED
        assert not sub.is_paused
        assert sub.cancelled_at == 2

    def test_cancelled_is_terminal(self):
        sub = open_subscription(PlanBuilder().build())
        sub.cancel(now=1)

        for action in (sub.cancel, sub.pause, sub.resume):
            with pytest.raises(SubscriptionInactiveError):
                action(3)
        with pytest.raises(SubscriptionInactiveError):
            sub.ensure_collectible()

    def test_ownership(self):
        plan = PlanBuilder().build()
        sub = open_subscription(plan)
        sub.ensure_owned_by(Identity(value="alice"), plan.address)

        with pytest.raises(UnauthorizedError):
            sub.ensure_owned_by(Identity(value="bob"), plan.address)
        with pytest.raises(UnauthorizedError):
            sub.ensure_owned_by(Identity(value="alice"), sub.address)

    def test_apply_payment_requires_next_nonce(self):
        sub = open_subscription(PlanBuilder().build())
        with pytest.raises(ValueError):
            sub.apply_payment(
                amount=PRICE,
                next_payment_due=2 * DAY,
                total_payments_made=1,
                total_amount_paid=PRICE,
                payment_nonce=2,
                now=DAY,
            )
