"""BillingProgram - single entry point to the billing operations.

Wraps the use cases, the read-side queries and the payment processor behind
keyword-argument methods so callers never build request models by hand.
"""

from __future__ import annotations

from typing import Any

from ..domain.addressing import AddressBook
from ..domain.models import HoldingAccount, Mint
from ..domain.services import PaymentEligibilityService
from ..domain.value_objects import Address, as_address, as_identity
from ..infrastructure.config import BillingConfig
from ..ports.clock import ClockPort
from ..ports.event_sink import EventSinkPort
from ..ports.logger import LoggerPort
from ..ports.store import LedgerStorePort
from ..ports.token_program import TokenProgramPort
from .payment_processor import PaymentProcessor
from .queries import BillingQueries
from .use_cases import (
    ApproveCollectionRequest,
    ApproveCollectionResponse,
    ApproveCollectionUseCase,
    CancelSubscriptionUseCase,
    CollectPaymentRequest,
    CollectPaymentResponse,
    CollectPaymentUseCase,
    CreatePlanRequest,
    CreatePlanResponse,
    CreatePlanUseCase,
    InitializeRegistryRequest,
    InitializeRegistryResponse,
    InitializeRegistryUseCase,
    PauseSubscriptionUseCase,
    ResumeSubscriptionUseCase,
    SubscribeRequest,
    SubscribeUseCase,
    SubscriptionActionRequest,
    SubscriptionResponse,
    UpdatePlanRequest,
    UpdatePlanResponse,
    UpdatePlanUseCase,
    WithdrawFundsRequest,
    WithdrawFundsResponse,
    WithdrawFundsUseCase,
)


class BillingProgram:
    """Facade over one billing deployment.

    Example:
        >>> program = create_in_memory_program()
        >>> await program.initialize_registry(authority="admin")
        >>> plan = await program.create_plan(provider="acme", plan_id="pro", ...)
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
        self.config = config or BillingConfig()
        self.store = store
        self.token_program = token_program
        self.clock = clock
        self.event_sink = event_sink

        deps: dict[str, Any] = {
            "store": store,
            "token_program": token_program,
            "clock": clock,
            "event_sink": event_sink,
            "config": self.config,
            "logger": logger,
        }
        self._initialize_registry = InitializeRegistryUseCase(**deps)
        self._create_plan = CreatePlanUseCase(**deps)
        self._update_plan = UpdatePlanUseCase(**deps)
        self._subscribe = SubscribeUseCase(**deps)
        self._approve_collection = ApproveCollectionUseCase(**deps)
        self._pause = PauseSubscriptionUseCase(**deps)
        self._resume = ResumeSubscriptionUseCase(**deps)
        self._cancel = CancelSubscriptionUseCase(**deps)
        self._collect = CollectPaymentUseCase(**deps)
        self._withdraw = WithdrawFundsUseCase(**deps)

        self.queries = BillingQueries(
            store,
            AddressBook(self.config.program_id),
            PaymentEligibilityService(self.config.grace_period_seconds),
        )
        self.processor = PaymentProcessor(
            self.queries,
            self._collect,
            clock,
            batch_size=self.config.processor_batch_size,
            interval_seconds=self.config.processor_interval_seconds,
            logger=logger,
        )

    # Registry and plans

    async def initialize_registry(self, *, authority: str) -> InitializeRegistryResponse:
        return await self._initialize_registry.execute(
            InitializeRegistryRequest(authority=authority)
        )

    async def create_plan(self, **fields: Any) -> CreatePlanResponse:
        """Publish a plan; see :class:`CreatePlanRequest` for the fields."""
        return await self._create_plan.execute(CreatePlanRequest(**fields))

    async def update_plan(self, **fields: Any) -> UpdatePlanResponse:
        """Change plan terms; see :class:`UpdatePlanRequest` for the fields."""
        return await self._update_plan.execute(UpdatePlanRequest(**fields))

    # Subscriptions

    async def subscribe(self, *, subscriber: str, plan: str) -> SubscriptionResponse:
        return await self._subscribe.execute(SubscribeRequest(subscriber=subscriber, plan=plan))

    async def approve_collection(
        self, *, subscriber: str, plan: str, payment_account: str, allowance: int
    ) -> ApproveCollectionResponse:
        return await self._approve_collection.execute(
            ApproveCollectionRequest(
                subscriber=subscriber,
                plan=plan,
                payment_account=payment_account,
                allowance=allowance,
            )
        )

    async def pause(self, *, subscriber: str, plan: str) -> SubscriptionResponse:
        return await self._pause.execute(
            SubscriptionActionRequest(subscriber=subscriber, plan=plan)
        )

    async def resume(self, *, subscriber: str, plan: str) -> SubscriptionResponse:
        return await self._resume.execute(
            SubscriptionActionRequest(subscriber=subscriber, plan=plan)
        )

    async def cancel(self, *, subscriber: str, plan: str) -> SubscriptionResponse:
        return await self._cancel.execute(
            SubscriptionActionRequest(subscriber=subscriber, plan=plan)
        )

    # Payments

    async def collect_payment(
        self,
        *,
        subscriber: str,
        plan: str,
        subscriber_token_account: str | None = None,
        caller: str | None = None,
    ) -> CollectPaymentResponse:
        return await self._collect.execute(
            CollectPaymentRequest(
                subscriber=subscriber,
                plan=plan,
                subscriber_token_account=subscriber_token_account,
                caller=caller,
            )
        )

    async def withdraw_funds(
        self, *, provider: str, plan_id: str, destination: str, amount: int | None = None
    ) -> WithdrawFundsResponse:
        return await self._withdraw.execute(
            WithdrawFundsRequest(
                provider=provider, plan_id=plan_id, destination=destination, amount=amount
            )
        )

    # Token setup helpers

    async def create_mint(self, *, authority: str, symbol: str, decimals: int = 6) -> Mint:
        """Issue a new token; its address is derived from ``authority`` and ``symbol``."""
        async with self.store.transaction() as tx:
            return await self.token_program.create_mint(
                tx,
                authority=as_identity(authority, "mint authority"),
                symbol=symbol,
                decimals=decimals,
            )

    async def open_account(self, *, mint: str, owner: str) -> HoldingAccount:
        """Open ``owner``'s holding account for ``mint`` at its derived address."""
        async with self.store.transaction() as tx:
            return await self.token_program.open_account(
                tx,
                mint=as_address(mint, "mint"),
                owner=as_identity(owner, "owner"),
            )

    async def mint_to(
        self, *, mint: str, destination: str, authority: str, amount: int
    ) -> HoldingAccount:
        async with self.store.transaction() as tx:
            return await self.token_program.mint_to(
                tx,
                mint=as_address(mint, "mint"),
                destination=as_address(destination, "destination"),
                authority=as_identity(authority, "mint authority"),
                amount=amount,
            )

    async def balance_of(self, account: Address | str) -> int:
        holding = await self.queries.get_holding_account(account)
        return holding.balance if holding else 0
