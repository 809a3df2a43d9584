"""Domain-specific exceptions for subscription billing.

Every error carries a stable ``code`` that names the failure independently of
the message text, so callers and indexers can match on it.
"""


class RecurpayError(Exception):
    """Base exception for all recurpay errors."""

    code = "RecurpayError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Serialize the error for logs and processor reports."""
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


# Categories


class ValidationError(RecurpayError):
    """Malformed input; the caller must correct and resubmit."""

    code = "ValidationError"


class AuthorizationError(RecurpayError):
    """Caller or reference does not match derived ownership."""

    code = "AuthorizationError"


class StateError(RecurpayError):
    """Operation is not valid in the record's current state."""

    code = "StateError"


class PaymentError(RecurpayError):
    """Timing or economic precondition of the payment engine failed."""

    code = "PaymentError"


class IntegrityError(RecurpayError):
    """A counter or amount computation left its bound."""

    code = "IntegrityError"


class StorageError(RecurpayError):
    """Record store failures."""

    code = "StorageError"


# Validation


class PlanIdTooLongError(ValidationError):
    code = "PlanIdTooLong"

    def __init__(self, plan_id: str, limit: int):
        super().__init__(
            f"Plan ID is too long ({len(plan_id.encode())} > {limit} bytes)",
            details={"plan_id": plan_id, "limit": limit},
        )


class InvalidPlanIdError(ValidationError):
    code = "InvalidPlanId"

    def __init__(self, plan_id: str):
        super().__init__("Plan ID cannot be empty", details={"plan_id": plan_id})


class NameTooLongError(ValidationError):
    code = "NameTooLong"

    def __init__(self, limit: int):
        super().__init__(f"Name is too long (limit {limit} bytes)", details={"limit": limit})


class DescriptionTooLongError(ValidationError):
    code = "DescriptionTooLong"

    def __init__(self, limit: int):
        super().__init__(
            f"Description is too long (limit {limit} bytes)", details={"limit": limit}
        )


class InvalidPriceError(ValidationError):
    code = "InvalidPrice"

    def __init__(self, price: int):
        super().__init__("Invalid price - must be greater than 0", details={"price": price})


class InvalidPeriodError(ValidationError):
    code = "InvalidPeriod"

    def __init__(self, period: int, minimum: int, maximum: int):
        super().__init__(
            f"Invalid period - must be between {minimum} and {maximum} seconds",
            details={"period": period, "minimum": minimum, "maximum": maximum},
        )


class InvalidMaxSubscribersError(ValidationError):
    code = "InvalidMaxSubscribers"

    def __init__(self, max_subscribers: int, current_subscribers: int):
        super().__init__(
            f"Max subscribers {max_subscribers} is below current count {current_subscribers}",
            details={
                "max_subscribers": max_subscribers,
                "current_subscribers": current_subscribers,
            },
        )


class InvalidAmountError(ValidationError):
    code = "InvalidAmount"

    def __init__(self, amount: int):
        super().__init__("Amount must be greater than 0", details={"amount": amount})


class SeedTooLongError(ValidationError):
    code = "SeedTooLong"

    def __init__(self, seed: str, limit: int):
        super().__init__(
            f"Max seed length exceeded ({len(seed.encode())} > {limit} bytes)",
            details={"seed": seed, "limit": limit},
        )


# Authorization


class UnauthorizedError(AuthorizationError):
    code = "Unauthorized"

    def __init__(self, message: str = "Unauthorized", details: dict | None = None):
        super().__init__(message, details)


class InvalidTokenMintError(AuthorizationError):
    code = "InvalidTokenMint"

    def __init__(self, mint: str, expected: str | None = None):
        details = {"mint": mint}
        if expected:
            details["expected"] = expected
        super().__init__(f"Invalid token mint '{mint}'", details=details)


class AddressMismatchError(AuthorizationError):
    code = "AddressMismatch"

    def __init__(self, kind: str, supplied: str, derived: str | None = None):
        details = {"kind": kind, "supplied": supplied}
        if derived is None:
            message = f"Malformed {kind} address"
        else:
            message = f"Supplied {kind} address does not match derived address"
            details["derived"] = derived
        super().__init__(message, details=details)


# State machine


class PlanInactiveError(StateError):
    code = "PlanInactive"

    def __init__(self, plan: str):
        super().__init__(f"Plan '{plan}' is not active", details={"plan": plan})


class PlanAtCapacityError(StateError):
    code = "PlanAtCapacity"

    def __init__(self, plan: str, max_subscribers: int):
        super().__init__(
            f"Plan '{plan}' reached its limit of {max_subscribers} subscribers",
            details={"plan": plan, "max_subscribers": max_subscribers},
        )


class PlanAlreadyExistsError(StateError):
    code = "PlanAlreadyExists"

    def __init__(self, plan: str):
        super().__init__(f"Plan '{plan}' already exists", details={"plan": plan})


class SubscriptionInactiveError(StateError):
    code = "SubscriptionInactive"

    def __init__(self, subscription: str):
        super().__init__(
            f"Subscription '{subscription}' is not active",
            details={"subscription": subscription},
        )


class SubscriptionPausedError(StateError):
    code = "SubscriptionPaused"

    def __init__(self, subscription: str):
        super().__init__(
            f"Subscription '{subscription}' is paused", details={"subscription": subscription}
        )


class SubscriptionNotPausedError(StateError):
    code = "SubscriptionNotPaused"

    def __init__(self, subscription: str):
        super().__init__(
            f"Subscription '{subscription}' is not paused",
            details={"subscription": subscription},
        )


class SubscriptionAlreadyExistsError(StateError):
    code = "SubscriptionAlreadyExists"

    def __init__(self, subscription: str):
        super().__init__(
            f"Subscription '{subscription}' already exists",
            details={"subscription": subscription},
        )


class RegistryAlreadyInitializedError(StateError):
    code = "RegistryAlreadyInitialized"

    def __init__(self, address: str):
        super().__init__("Registry is already initialized", details={"address": address})


class RegistryNotInitializedError(StateError):
    code = "RegistryNotInitialized"

    def __init__(self, address: str):
        super().__init__("Registry has not been initialized", details={"address": address})


# Timing / economic


class PaymentNotDueError(PaymentError):
    code = "PaymentNotDue"

    def __init__(self, now: int, next_payment_due: int, grace_period: int):
        super().__init__(
            f"Payment not due until {next_payment_due - grace_period} (now {now})",
            details={
                "now": now,
                "next_payment_due": next_payment_due,
                "grace_period": grace_period,
            },
        )


class InsufficientFundsError(PaymentError):
    code = "InsufficientFunds"

    def __init__(self, account: str, required: int, available: int):
        super().__init__(
            f"Account '{account}' holds {available}, {required} required",
            details={"account": account, "required": required, "available": available},
        )


# Integrity


class ArithmeticOverflowError(IntegrityError):
    code = "ArithmeticOverflow"

    def __init__(self, field: str, operation: str):
        super().__init__(
            f"Arithmetic overflow computing '{field}' ({operation})",
            details={"field": field, "operation": operation},
        )


# Storage


class RecordNotFoundError(StorageError):
    code = "RecordNotFound"

    def __init__(self, kind: str, address: str):
        super().__init__(
            f"{kind} not found at '{address}'", details={"kind": kind, "address": address}
        )


class RecordAlreadyExistsError(StorageError):
    code = "RecordAlreadyExists"

    def __init__(self, address: str):
        super().__init__(f"Record already exists at '{address}'", details={"address": address})


class TransactionConflictError(StorageError):
    code = "TransactionConflict"

    def __init__(self, addresses: list[str]):
        super().__init__(
            "Transaction conflicted with a concurrent commit; retry from scratch",
            details={"addresses": addresses},
        )
