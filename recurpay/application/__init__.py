"""Application layer - Use cases, queries and the payment processor."""

from .payment_processor import CollectionFailure, PaymentProcessor, SweepReport
from .program import BillingProgram
from .queries import BillingQueries
from .use_cases import (
    ApproveCollectionRequest,
    ApproveCollectionUseCase,
    CancelSubscriptionUseCase,
    CollectPaymentRequest,
    CollectPaymentUseCase,
    CreatePlanRequest,
    CreatePlanUseCase,
    InitializeRegistryRequest,
    InitializeRegistryUseCase,
    PauseSubscriptionUseCase,
    ResumeSubscriptionUseCase,
    SubscribeRequest,
    SubscribeUseCase,
    SubscriptionActionRequest,
    UpdatePlanRequest,
    UpdatePlanUseCase,
    WithdrawFundsRequest,
    WithdrawFundsUseCase,
)

__all__ = [
    "ApproveCollectionRequest",
    "ApproveCollectionUseCase",
    "BillingProgram",
    "BillingQueries",
    "CancelSubscriptionUseCase",
    "CollectPaymentRequest",
    "CollectPaymentUseCase",
    "CollectionFailure",
    "CreatePlanRequest",
    "CreatePlanUseCase",
    "InitializeRegistryRequest",
    "InitializeRegistryUseCase",
    "PauseSubscriptionUseCase",
    "PaymentProcessor",
    "ResumeSubscriptionUseCase",
    "SubscribeRequest",
    "SubscribeUseCase",
    "SubscriptionActionRequest",
    "SweepReport",
    "UpdatePlanRequest",
    "UpdatePlanUseCase",
    "WithdrawFundsRequest",
    "WithdrawFundsUseCase",
]
