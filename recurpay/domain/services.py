"""Domain services containing payment engine logic.

Collection is permissionless, so eligibility is a pure function of persisted
state and the current time. The quote carries every new counter value,
computed with checked arithmetic before anything is mutated.
"""

from pydantic import BaseModel, ConfigDict

from .aggregates import Plan, Subscription
from .constants import PAYMENT_GRACE_PERIOD
from .exceptions import InsufficientFundsError, PaymentNotDueError
from .ledger import checked_add_timestamp, checked_add_u32, checked_add_u64


class PaymentQuote(BaseModel):
    """Post-collection values for one billing period."""

    model_config = ConfigDict(frozen=True)

    amount: int
    next_payment_due: int
    total_payments_made: int
    total_amount_paid: int
    payment_nonce: int
    plan_total_revenue: int


class PaymentEligibilityService:
    """Decides whether a subscription may be charged now, and for how much."""

    def __init__(self, grace_period_seconds: int = PAYMENT_GRACE_PERIOD):
        self.grace_period_seconds = grace_period_seconds

    def collectible_from(self, subscription: Subscription) -> int:
        """Earliest Unix time at which the next collection is allowed."""
        return subscription.next_payment_due - self.grace_period_seconds

    def is_due(self, subscription: Subscription, now: int) -> bool:
        return now >= self.collectible_from(subscription)

    def ensure_due(self, subscription: Subscription, now: int) -> None:
        if not self.is_due(subscription, now):
            raise PaymentNotDueError(
                now, subscription.next_payment_due, self.grace_period_seconds
            )

    def quote(
        self,
        subscription: Subscription,
        plan: Plan,
        *,
        now: int,
        available_balance: int,
        payer: str,
    ) -> PaymentQuote:
        """Check every collection precondition and compute the new totals.

        Raises:
            SubscriptionInactiveError: cancelled subscription
            SubscriptionPausedError: paused subscription
            PaymentNotDueError: before ``next_payment_due - grace``
            InsufficientFundsError: payer balance below the price
            ArithmeticOverflowError: any counter would leave its bound
        """
        subscription.ensure_collectible()
        self.ensure_due(subscription, now)

        price = plan.price_per_period
        if available_balance < price:
            raise InsufficientFundsError(payer, price, available_balance)

        return PaymentQuote(
            amount=price,
            next_payment_due=checked_add_timestamp(
                subscription.next_payment_due,
                plan.period_duration_seconds,
                field="next_payment_due",
            ),
            total_payments_made=checked_add_u32(
                subscription.total_payments_made, 1, field="total_payments_made"
            ),
            total_amount_paid=checked_add_u64(
                subscription.total_amount_paid, price, field="total_amount_paid"
            ),
            payment_nonce=checked_add_u64(subscription.payment_nonce, 1, field="payment_nonce"),
            plan_total_revenue=checked_add_u64(plan.total_revenue, price, field="total_revenue"),
        )
