"""Application use cases following hexagonal architecture principles.

Each use case runs as one store transaction: it recomputes every record
address from the logical keys, checks authorization, lets the aggregates
enforce their rules and stages the writes. Domain events are published only
after the transaction commits.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, Field

from ..domain.addressing import AddressBook
from ..domain.aggregates import Plan, Registry, Subscription
from ..domain.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTokenMintError,
    PlanAlreadyExistsError,
    RecurpayError,
    RegistryAlreadyInitializedError,
    RegistryNotInitializedError,
    SubscriptionAlreadyExistsError,
    UnauthorizedError,
)
from ..domain.models import HoldingAccount, LedgerRecord
from ..domain.services import PaymentEligibilityService
from ..domain.value_objects import Address, as_address, as_identity
from ..infrastructure.config import BillingConfig
from ..ports.clock import ClockPort
from ..ports.event_sink import EventSinkPort
from ..ports.logger import LoggerPort
from ..ports.store import LedgerStorePort, TransactionPort
from ..ports.token_program import TokenProgramPort


class UseCase(Protocol):
    """Protocol for use case implementations."""

    async def execute(self, request: Any) -> Any:
        """Execute the use case with the given request."""
        ...


class BillingUseCase:
    """Shared wiring for billing use cases.

    Holds the ports, the address book bound to the configured program id,
    and the post-commit event publishing.
    """

    def __init__(
        self,
        store: LedgerStorePort,
        token_program: TokenProgramPort,
        clock: ClockPort,
        event_sink: EventSinkPort,
        config: BillingConfig | None = None,
        logger: LoggerPort | None = None,
    ):
        """Initialize the use case with required dependencies."""
        self._store = store
        self._tokens = token_program
        self._clock = clock
        self._events = event_sink
        self._config = config or BillingConfig()
        self._addresses = AddressBook(self._config.program_id)
        self._logger = logger or self._create_default_logger()

    def _create_default_logger(self) -> LoggerPort:
        from ..infrastructure.simple_logger import SimpleLogger

        return SimpleLogger(f"recurpay.application.{type(self).__name__}")

    async def _publish(self, *records: LedgerRecord) -> None:
        """Deliver the events buffered on committed records.

        A failing sink is logged; the committed operation stands.
        """
        for record in records:
            for event in record.get_uncommitted_events():
                try:
                    await self._events.publish(event)
                except Exception as e:
                    self._logger.exception(
                        "Failed to publish event",
                        exc_info=e,
                        event_type=event.event_type,
                        aggregate_id=event.aggregate_id,
                    )
            record.mark_events_committed()

    async def _load_registry(self, tx: TransactionPort) -> Registry:
        address = self._addresses.registry()
        registry = await tx.find(address, Registry)
        if registry is None:
            raise RegistryNotInitializedError(str(address))
        return registry

    async def _load_subscription(
        self, tx: TransactionPort, subscriber: str, plan: str, supplied: str | None
    ) -> Subscription:
        """Load a subscription and check it belongs to ``subscriber`` and ``plan``."""
        subscriber_id = as_identity(subscriber, "subscriber")
        plan_address = as_address(plan, "plan")
        address = AddressBook.verify(
            "subscription",
            as_address(supplied, "subscription") if supplied else None,
            self._addresses.subscription(subscriber_id, plan_address),
        )
        subscription = await tx.get(address, Subscription)
        subscription.ensure_owned_by(subscriber_id, plan_address)
        return subscription


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class InitializeRegistryRequest(BaseModel):
    """Request model for registry initialization."""

    authority: str = Field(..., description="Identity signing the initialization")


class InitializeRegistryResponse(BaseModel):
    registry_address: str
    owner: str
    created_at: int


class InitializeRegistryUseCase(BillingUseCase):
    """Create the single global registry with zeroed counters."""

    async def execute(self, request: InitializeRegistryRequest) -> InitializeRegistryResponse:
        now = self._clock.timestamp()
        address = self._addresses.registry()

        async with self._store.transaction() as tx:
            registry = Registry.initialize(
                address=address, owner=as_identity(request.authority, "authority"), now=now
            )
            if await tx.exists(address):
                raise RegistryAlreadyInitializedError(str(address))
            await tx.create(registry)

        await self._publish(registry)
        self._logger.info("Registry initialized", registry=address.short, owner=request.authority)

        return InitializeRegistryResponse(
            registry_address=str(address), owner=request.authority, created_at=now
        )


# ---------------------------------------------------------------------------
# Plan catalog
# ---------------------------------------------------------------------------


class CreatePlanRequest(BaseModel):
    """Request model for publishing a plan."""

    provider: str = Field(..., description="Provider identity signing the request")
    plan_id: str = Field(..., description="Provider-chosen plan identifier")
    name: str
    description: str = ""
    price_per_period: int = Field(..., description="Amount collected per period")
    period_duration_seconds: int
    payment_token: str = Field(..., description="Mint address of the payment token")
    max_subscribers: int | None = None
    plan_address: str | None = Field(default=None, description="Optional expected plan address")
    custody_address: str | None = Field(
        default=None, description="Optional expected custody address"
    )


class CreatePlanResponse(BaseModel):
    plan_address: str
    custody_address: str
    plan_id: str
    is_active: bool
    billing_period: str


class CreatePlanUseCase(BillingUseCase):
    """Publish a plan and open its custody account.

    Business Rules:
    - Terms are validated before any lookup
    - The custody account is owned by the plan address, never the provider
    - Registry ``total_providers`` grows by one per plan
    """

    async def execute(self, request: CreatePlanRequest) -> CreatePlanResponse:
        provider = as_identity(request.provider, "provider")
        Plan.validate_plan_id(request.plan_id)
        Plan.validate_terms(
            name=request.name,
            description=request.description,
            price_per_period=request.price_per_period,
            period_duration_seconds=request.period_duration_seconds,
            min_period=self._config.min_period_seconds,
            max_period=self._config.max_period_seconds,
        )

        plan_address = AddressBook.verify(
            "plan",
            as_address(request.plan_address, "plan") if request.plan_address else None,
            self._addresses.plan(provider, request.plan_id),
        )
        custody_address = AddressBook.verify(
            "custody",
            as_address(request.custody_address, "custody") if request.custody_address else None,
            self._addresses.custody(provider, request.plan_id),
        )
        payment_token = as_address(request.payment_token, "payment token")
        now = self._clock.timestamp()

        async with self._store.transaction() as tx:
            registry = await self._load_registry(tx)
            if await self._tokens.get_mint(tx, payment_token) is None:
                raise InvalidTokenMintError(str(payment_token))
            if await tx.exists(plan_address):
                raise PlanAlreadyExistsError(str(plan_address))

            plan = Plan.create(
                address=plan_address,
                owner=provider,
                plan_id=request.plan_id,
                name=request.name,
                description=request.description,
                price_per_period=request.price_per_period,
                period_duration_seconds=request.period_duration_seconds,
                payment_token=payment_token,
                custody_address=custody_address,
                max_subscribers=request.max_subscribers,
                now=now,
                min_period=self._config.min_period_seconds,
                max_period=self._config.max_period_seconds,
            )
            registry.record_provider()

            await tx.create(plan)
            await self._tokens.open_program_account(
                tx, address=custody_address, mint=payment_token, authority=plan_address
            )
            await tx.update(registry)

        await self._publish(plan)
        self._logger.info(
            "Plan created",
            provider=request.provider,
            plan_id=request.plan_id,
            plan=plan_address.short,
            price=request.price_per_period,
            period=plan.billing_period,
        )

        return CreatePlanResponse(
            plan_address=str(plan_address),
            custody_address=str(custody_address),
            plan_id=request.plan_id,
            is_active=plan.is_active,
            billing_period=plan.billing_period,
        )


class UpdatePlanRequest(BaseModel):
    """Request model for changing plan terms; omitted fields stay unchanged."""

    provider: str
    plan_id: str
    name: str | None = None
    description: str | None = None
    price_per_period: int | None = None
    max_subscribers: int | None = None
    clear_max_subscribers: bool = Field(default=False, description="Remove the subscriber cap")
    is_active: bool | None = None
    plan_address: str | None = None


class UpdatePlanResponse(BaseModel):
    plan_address: str
    changes: dict[str, Any]


class UpdatePlanUseCase(BillingUseCase):
    """Change plan terms or availability (owner only)."""

    async def execute(self, request: UpdatePlanRequest) -> UpdatePlanResponse:
        provider = as_identity(request.provider, "provider")
        plan_address = AddressBook.verify(
            "plan",
            as_address(request.plan_address, "plan") if request.plan_address else None,
            self._addresses.plan(provider, request.plan_id),
        )

        async with self._store.transaction() as tx:
            plan = await tx.get(plan_address, Plan)
            plan.ensure_owned_by(provider)
            changes = plan.update(
                name=request.name,
                description=request.description,
                price_per_period=request.price_per_period,
                max_subscribers=request.max_subscribers,
                clear_max_subscribers=request.clear_max_subscribers,
                is_active=request.is_active,
            )
            if changes:
                await tx.update(plan)

        await self._publish(plan)
        self._logger.info("Plan updated", plan=plan_address.short, fields=sorted(changes))

        return UpdatePlanResponse(plan_address=str(plan_address), changes=changes)


# ---------------------------------------------------------------------------
# Subscription lifecycle
# ---------------------------------------------------------------------------


class SubscribeRequest(BaseModel):
    """Request model for enrolling in a plan."""

    subscriber: str = Field(..., description="Subscriber identity signing the request")
    plan: str = Field(..., description="Plan address")
    subscription_address: str | None = None


class SubscriptionResponse(BaseModel):
    """State of a subscription after a lifecycle operation."""

    subscription_address: str
    plan_address: str
    state: str
    next_payment_due: int
    payment_nonce: int


def _subscription_response(subscription: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        subscription_address=str(subscription.address),
        plan_address=str(subscription.plan),
        state=subscription.state.value,
        next_payment_due=subscription.next_payment_due,
        payment_nonce=subscription.payment_nonce,
    )


class SubscribeUseCase(BillingUseCase):
    """Enroll a subscriber in a plan.

    Business Rules:
    - A provider cannot subscribe to their own plan
    - One record per subscriber and plan, forever; cancelled records block
      re-subscription
    - First payment falls due one period after enrollment
    """

    async def execute(self, request: SubscribeRequest) -> SubscriptionResponse:
        subscriber = as_identity(request.subscriber, "subscriber")
        plan_address = as_address(request.plan, "plan")
        supplied = request.subscription_address
        subscription_address = AddressBook.verify(
            "subscription",
            as_address(supplied, "subscription") if supplied else None,
            self._addresses.subscription(subscriber, plan_address),
        )
        now = self._clock.timestamp()

        async with self._store.transaction() as tx:
            plan = await tx.get(plan_address, Plan)
            if plan.owner == subscriber:
                raise UnauthorizedError(
                    "Providers cannot subscribe to their own plan",
                    details={"plan": str(plan_address), "caller": request.subscriber},
                )
            plan.ensure_active()
            if await tx.exists(subscription_address):
                raise SubscriptionAlreadyExistsError(str(subscription_address))

            plan.add_subscriber()
            subscription = Subscription.open(
                address=subscription_address, subscriber=subscriber, plan=plan, now=now
            )
            registry = await self._load_registry(tx)
            registry.record_subscription()

            await tx.create(subscription)
            await tx.update(plan)
            await tx.update(registry)

        await self._publish(subscription)
        self._logger.info(
            "Subscription created",
            subscriber=request.subscriber,
            plan=plan_address.short,
            next_payment_due=subscription.next_payment_due,
        )
        return _subscription_response(subscription)


class SubscriptionActionRequest(BaseModel):
    """Request model for subscriber-signed lifecycle changes."""

    subscriber: str
    plan: str
    subscription_address: str | None = None


class PauseSubscriptionUseCase(BillingUseCase):
    """Stop billing until the subscriber resumes."""

    async def execute(self, request: SubscriptionActionRequest) -> SubscriptionResponse:
        now = self._clock.timestamp()
        async with self._store.transaction() as tx:
            subscription = await self._load_subscription(
                tx, request.subscriber, request.plan, request.subscription_address
            )
            subscription.pause(now)
            await tx.update(subscription)

        await self._publish(subscription)
        self._logger.info("Subscription paused", subscription=subscription.address.short)
        return _subscription_response(subscription)


class ResumeSubscriptionUseCase(BillingUseCase):
    """Restart billing; the due date is left where it was."""

    async def execute(self, request: SubscriptionActionRequest) -> SubscriptionResponse:
        now = self._clock.timestamp()
        async with self._store.transaction() as tx:
            subscription = await self._load_subscription(
                tx, request.subscriber, request.plan, request.subscription_address
            )
            subscription.resume(now)
            await tx.update(subscription)

        await self._publish(subscription)
        self._logger.info(
            "Subscription resumed",
            subscription=subscription.address.short,
            next_payment_due=subscription.next_payment_due,
        )
        return _subscription_response(subscription)


class CancelSubscriptionUseCase(BillingUseCase):
    """Cancel permanently and release the plan seat."""

    async def execute(self, request: SubscriptionActionRequest) -> SubscriptionResponse:
        now = self._clock.timestamp()
        async with self._store.transaction() as tx:
            subscription = await self._load_subscription(
                tx, request.subscriber, request.plan, request.subscription_address
            )
            plan = await tx.get(subscription.plan, Plan)
            subscription.cancel(now)
            plan.remove_subscriber()
            await tx.update(subscription)
            await tx.update(plan)

        await self._publish(subscription)
        self._logger.info("Subscription cancelled", subscription=subscription.address.short)
        return _subscription_response(subscription)


# ---------------------------------------------------------------------------
# Payments and custody
# ---------------------------------------------------------------------------


class ApproveCollectionRequest(BaseModel):
    """Request model for delegating an allowance to a subscription."""

    subscriber: str
    plan: str
    payment_account: str = Field(..., description="Subscriber holding account to charge")
    allowance: int = Field(..., description="Maximum amount the subscription may pull")
    subscription_address: str | None = None


class ApproveCollectionResponse(BaseModel):
    subscription_address: str
    payment_account: str
    allowance: int


class ApproveCollectionUseCase(BillingUseCase):
    """Let the subscription address pull payments from a subscriber account.

    Collection is permissionless, so the delegate is the subscription's own
    address; whoever triggers a collection never holds spending rights.
    """

    async def execute(self, request: ApproveCollectionRequest) -> ApproveCollectionResponse:
        if request.allowance <= 0:
            raise InvalidAmountError(request.allowance)

        subscriber = as_identity(request.subscriber, "subscriber")
        account_address = as_address(request.payment_account, "payment account")

        async with self._store.transaction() as tx:
            subscription = await self._load_subscription(
                tx, request.subscriber, request.plan, request.subscription_address
            )
            plan = await tx.get(subscription.plan, Plan)
            account = await self._tokens.get_account(tx, account_address)
            if account.mint != plan.payment_token:
                raise InvalidTokenMintError(str(account.mint), expected=str(plan.payment_token))

            subscription.approve_payment_account(account_address, request.allowance)
            await self._tokens.approve(
                tx,
                account=account_address,
                owner=subscriber,
                delegate=subscription.address,
                amount=request.allowance,
            )
            await tx.update(subscription)

        await self._publish(subscription)
        self._logger.info(
            "Collection approved",
            subscription=subscription.address.short,
            account=account_address.short,
            allowance=request.allowance,
        )
        return ApproveCollectionResponse(
            subscription_address=str(subscription.address),
            payment_account=str(account_address),
            allowance=request.allowance,
        )


class CollectPaymentRequest(BaseModel):
    """Request model for a permissionless payment collection."""

    subscriber: str
    plan: str
    subscriber_token_account: str | None = Field(
        default=None, description="Account to charge; defaults to the approved payment account"
    )
    subscription_address: str | None = None
    caller: str | None = Field(default=None, description="Whoever triggered the collection")


class CollectPaymentResponse(BaseModel):
    subscription_address: str
    amount: int
    payment_number: int
    payment_nonce: int
    next_payment_due: int
    custody_balance: int


class CollectPaymentUseCase(BillingUseCase):
    """Pull one period's price from the subscriber into plan custody.

    Business Rules:
    - Anyone may trigger a collection; funds only ever move to custody
    - Allowed from ``next_payment_due - grace`` onwards
    - Every counter is computed with checked arithmetic before any mutation
    - Any failure leaves subscription, plan and balances untouched
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._eligibility = PaymentEligibilityService(self._config.grace_period_seconds)

    async def execute(self, request: CollectPaymentRequest) -> CollectPaymentResponse:
        subscriber = as_identity(request.subscriber, "subscriber")
        now = self._clock.timestamp()

        try:
            async with self._store.transaction() as tx:
                subscription = await self._load_subscription(
                    tx, request.subscriber, request.plan, request.subscription_address
                )
                plan = await tx.get(subscription.plan, Plan)
                custody_address = AddressBook.verify(
                    "custody",
                    plan.custody_address,
                    self._addresses.custody(plan.owner, plan.plan_id),
                )

                account_address = self._payment_account(request, subscription)
                account = await self._tokens.get_account(tx, account_address)
                if not account.is_owned_by(subscriber):
                    raise UnauthorizedError(
                        "Payment account is not owned by the subscriber",
                        details={"account": str(account_address)},
                    )
                if account.mint != plan.payment_token:
                    raise InvalidTokenMintError(
                        str(account.mint), expected=str(plan.payment_token)
                    )

                quote = self._eligibility.quote(
                    subscription,
                    plan,
                    now=now,
                    available_balance=account.balance,
                    payer=str(account_address),
                )
                _, custody = await self._tokens.transfer(
                    tx,
                    source=account_address,
                    destination=custody_address,
                    authority=subscription.address,
                    amount=quote.amount,
                )

                subscription.apply_payment(
                    amount=quote.amount,
                    next_payment_due=quote.next_payment_due,
                    total_payments_made=quote.total_payments_made,
                    total_amount_paid=quote.total_amount_paid,
                    payment_nonce=quote.payment_nonce,
                    now=now,
                )
                plan.apply_revenue(quote.plan_total_revenue)
                await tx.update(subscription)
                await tx.update(plan)
        except RecurpayError as e:
            self._logger.warning(
                "Payment collection rejected",
                subscriber=request.subscriber,
                plan=request.plan,
                error=e.code,
            )
            raise

        await self._publish(subscription)
        self._logger.info(
            "Payment collected",
            subscription=subscription.address.short,
            amount=quote.amount,
            nonce=quote.payment_nonce,
            next_payment_due=quote.next_payment_due,
            caller=request.caller,
        )
        return CollectPaymentResponse(
            subscription_address=str(subscription.address),
            amount=quote.amount,
            payment_number=quote.total_payments_made,
            payment_nonce=quote.payment_nonce,
            next_payment_due=quote.next_payment_due,
            custody_balance=custody.balance,
        )

    @staticmethod
    def _payment_account(request: CollectPaymentRequest, subscription: Subscription) -> Address:
        if request.subscriber_token_account:
            return as_address(request.subscriber_token_account, "payment account")
        if subscription.payment_account is None:
            raise UnauthorizedError(
                "No payment account approved for collection",
                details={"subscription": str(subscription.address)},
            )
        return subscription.payment_account


class WithdrawFundsRequest(BaseModel):
    """Request model for moving collected funds out of custody."""

    provider: str
    plan_id: str
    destination: str = Field(..., description="Provider holding account receiving the funds")
    amount: int | None = Field(default=None, description="Amount; the full balance when omitted")
    plan_address: str | None = None


class WithdrawFundsResponse(BaseModel):
    plan_address: str
    amount: int
    destination: str
    remaining_balance: int


class WithdrawFundsUseCase(BillingUseCase):
    """Pay out custody funds to the plan owner.

    Business Rules:
    - Only the plan owner, only while the plan is active
    - The destination must belong to the provider and hold the plan token
    - The plan address signs the transfer
    """

    async def execute(self, request: WithdrawFundsRequest) -> WithdrawFundsResponse:
        provider = as_identity(request.provider, "provider")
        plan_address = AddressBook.verify(
            "plan",
            as_address(request.plan_address, "plan") if request.plan_address else None,
            self._addresses.plan(provider, request.plan_id),
        )
        destination_address = as_address(request.destination, "destination")

        async with self._store.transaction() as tx:
            plan = await tx.get(plan_address, Plan)
            plan.ensure_owned_by(provider)
            plan.ensure_active()

            custody = await self._tokens.get_account(tx, plan.custody_address)
            destination = await self._tokens.get_account(tx, destination_address)
            self._check_destination(destination, provider_plan=plan)

            amount = custody.balance if request.amount is None else request.amount
            if amount <= 0:
                raise InvalidAmountError(amount)
            if amount > custody.balance:
                raise InsufficientFundsError(str(plan.custody_address), amount, custody.balance)

            custody, _ = await self._tokens.transfer(
                tx,
                source=plan.custody_address,
                destination=destination_address,
                authority=plan_address,
                amount=amount,
            )
            plan.record_withdrawal(
                amount=amount,
                destination=destination_address,
                remaining_balance=custody.balance,
            )

        await self._publish(plan)
        self._logger.info(
            "Funds withdrawn",
            plan=plan_address.short,
            amount=amount,
            remaining=custody.balance,
        )
        return WithdrawFundsResponse(
            plan_address=str(plan_address),
            amount=amount,
            destination=str(destination_address),
            remaining_balance=custody.balance,
        )

    @staticmethod
    def _check_destination(destination: HoldingAccount, *, provider_plan: Plan) -> None:
        if not destination.is_owned_by(provider_plan.owner):
            raise UnauthorizedError(
                "Withdrawal destination is not owned by the provider",
                details={"destination": str(destination.address)},
            )
        if destination.mint != provider_plan.payment_token:
            raise InvalidTokenMintError(
                str(destination.mint), expected=str(provider_plan.payment_token)
            )
