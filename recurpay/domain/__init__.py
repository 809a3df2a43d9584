"""Domain layer - Billing records, state machine and payment rules."""

from .addressing import AddressBook, derive_address, mint_address, token_account_address
from .aggregates import Plan, Registry, Subscription
from .enums import RecordKind, SubscriptionState
from .events import (
    CollectionApproved,
    DomainEvent,
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
    AddressMismatchError,
    ArithmeticOverflowError,
    AuthorizationError,
    DescriptionTooLongError,
    InsufficientFundsError,
    IntegrityError,
    InvalidAmountError,
    InvalidMaxSubscribersError,
    InvalidPeriodError,
    InvalidPlanIdError,
    InvalidPriceError,
    InvalidTokenMintError,
    NameTooLongError,
    PaymentError,
    PaymentNotDueError,
    PlanAlreadyExistsError,
    PlanAtCapacityError,
    PlanIdTooLongError,
    PlanInactiveError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    RecurpayError,
    RegistryAlreadyInitializedError,
    RegistryNotInitializedError,
    SeedTooLongError,
    StateError,
    StorageError,
    SubscriptionAlreadyExistsError,
    SubscriptionInactiveError,
    SubscriptionNotPausedError,
    SubscriptionPausedError,
    TransactionConflictError,
    UnauthorizedError,
    ValidationError,
)
from .models import HoldingAccount, LedgerRecord, Mint
from .services import PaymentEligibilityService, PaymentQuote
from .value_objects import Address, Identity, format_period_duration

__all__ = [
    "Address",
    "AddressBook",
    "AddressMismatchError",
    "ArithmeticOverflowError",
    "AuthorizationError",
    "CollectionApproved",
    "DescriptionTooLongError",
    "DomainEvent",
    "FundsWithdrawn",
    "HoldingAccount",
    "Identity",
    "InsufficientFundsError",
    "IntegrityError",
    "InvalidAmountError",
    "InvalidMaxSubscribersError",
    "InvalidPeriodError",
    "InvalidPlanIdError",
    "InvalidPriceError",
    "InvalidTokenMintError",
    "LedgerRecord",
    "Mint",
    "NameTooLongError",
    "PaymentEligibilityService",
    "PaymentError",
    "PaymentNotDueError",
    "PaymentProcessed",
    "PaymentQuote",
    "Plan",
    "PlanAlreadyExistsError",
    "PlanAtCapacityError",
    "PlanCreated",
    "PlanIdTooLongError",
    "PlanInactiveError",
    "PlanUpdated",
    "RecordAlreadyExistsError",
    "RecordKind",
    "RecordNotFoundError",
    "RecurpayError",
    "Registry",
    "RegistryAlreadyInitializedError",
    "RegistryInitialized",
    "RegistryNotInitializedError",
    "SeedTooLongError",
    "StateError",
    "StorageError",
    "Subscription",
    "SubscriptionAlreadyExistsError",
    "SubscriptionCancelled",
    "SubscriptionCreated",
    "SubscriptionInactiveError",
    "SubscriptionNotPausedError",
    "SubscriptionPaused",
    "SubscriptionPausedError",
    "SubscriptionResumed",
    "SubscriptionState",
    "TransactionConflictError",
    "UnauthorizedError",
    "ValidationError",
    "derive_address",
    "format_period_duration",
    "mint_address",
    "token_account_address",
]
