"""End-to-end billing scenarios over the in-memory program."""

import asyncio

import pytest

from recurpay import create_in_memory_program
from recurpay.application.use_cases import CollectPaymentRequest
from recurpay.domain.aggregates import Plan, Subscription
from recurpay.domain.exceptions import (
    InsufficientFundsError,
    PaymentNotDueError,
    PlanAtCapacityError,
    SubscriptionInactiveError,
    TransactionConflictError,
    UnauthorizedError,
)
from recurpay.infrastructure.config import BillingConfig
from recurpay.infrastructure.event_sinks import InMemoryEventSink
from recurpay.infrastructure.system_clock import ManualClock
from tests.builders import DAY, PRICE, STARTING_BALANCE, PlanRequestBuilder


class TestDailyPlanScenario:
    """Price 1_000_000 per day, subscribe at t=0."""

    @pytest.mark.asyncio
    async def test_collect_inside_grace_then_retry(self, program, subscription, clock):
        assert subscription.next_payment_due == DAY

        clock.set(DAY - 1)
        first = await program.collect_payment(subscriber="alice", plan=subscription.plan_address)
        assert first.next_payment_due == 2 * DAY

        with pytest.raises(PaymentNotDueError):
            await program.collect_payment(subscriber="alice", plan=subscription.plan_address)

        sub = await program.queries.get_subscription(subscription.subscription_address)
        assert sub.next_payment_due == 172_800
        assert sub.payment_nonce == 1

    @pytest.mark.asyncio
    async def test_each_collection_moves_every_counter(self, program, subscription, clock):
        plan_address = subscription.plan_address
        for period in range(1, 4):
            clock.set(period * DAY)
            await program.collect_payment(subscriber="alice", plan=plan_address)

            sub = await program.queries.get_subscription(subscription.subscription_address)
            plan = await program.queries.get_plan(plan_address)
            assert sub.next_payment_due == (period + 1) * DAY
            assert sub.payment_nonce == period
            assert sub.total_payments_made == period
            assert sub.total_amount_paid == period * PRICE
            assert plan.total_revenue == period * PRICE
            assert await program.queries.custody_balance(plan_address) == period * PRICE

    @pytest.mark.asyncio
    async def test_nonces_make_events_distinct(self, program, subscription, clock, event_sink):
        for period in (1, 2):
            clock.set(period * DAY)
            await program.collect_payment(subscriber="alice", plan=subscription.plan_address)

        payments = event_sink.of_type("PaymentProcessed")
        assert [p.nonce for p in payments] == [1, 2]
        assert [p.payment_number for p in payments] == [1, 2]


class TestPropertyScenarios:
    """Scenarios for plan capacity, cancellation and custody."""

    @pytest.mark.asyncio
    async def test_capacity_creates_nothing(self, program, tokens, store):
        plan = await program.create_plan(
            **PlanRequestBuilder(tokens.mint).with_max_subscribers(1).build()
        )
        await program.subscribe(subscriber="alice", plan=plan.plan_address)
        before = len(store)

        with pytest.raises(PlanAtCapacityError):
            await program.subscribe(subscriber="bob", plan=plan.plan_address)

        assert len(store) == before
        assert (await program.queries.get_plan(plan.plan_address)).current_subscribers == 1

    @pytest.mark.asyncio
    async def test_self_subscription(self, program, plan):
        with pytest.raises(UnauthorizedError):
            await program.subscribe(subscriber="acme", plan=plan.plan_address)

    @pytest.mark.asyncio
    async def test_cancel_then_collect(self, program, subscription, clock):
        await program.cancel(subscriber="alice", plan=subscription.plan_address)
        clock.set(DAY)

        with pytest.raises(SubscriptionInactiveError):
            await program.collect_payment(subscriber="alice", plan=subscription.plan_address)
        with pytest.raises(SubscriptionInactiveError):
            await program.cancel(subscriber="alice", plan=subscription.plan_address)

        plan = await program.queries.get_plan(subscription.plan_address)
        assert plan.current_subscribers == 0

    @pytest.mark.asyncio
    async def test_withdrawals_never_exceed_deposits(self, program, tokens, subscription, clock):
        for period in (1, 2):
            clock.set(period * DAY)
            await program.collect_payment(subscriber="alice", plan=subscription.plan_address)

        destination = str(tokens.provider_account)
        await program.withdraw_funds(
            provider="acme", plan_id="pro", destination=destination, amount=PRICE // 2
        )
        with pytest.raises(InsufficientFundsError):
            await program.withdraw_funds(
                provider="acme", plan_id="pro", destination=destination, amount=2 * PRICE
            )
        rest = await program.withdraw_funds(provider="acme", plan_id="pro", destination=destination)

        assert rest.amount == 2 * PRICE - PRICE // 2
        assert rest.remaining_balance == 0
        assert await program.balance_of(tokens.provider_account) == 2 * PRICE
        assert await program.balance_of(tokens.subscriber_account) == STARTING_BALANCE - 2 * PRICE

    @pytest.mark.asyncio
    async def test_collect_caller_cannot_redirect_funds(self, program, tokens, subscription, clock):
        clock.set(DAY)
        await program.collect_payment(
            subscriber="alice", plan=subscription.plan_address, caller="mallory"
        )

        assert await program.balance_of(tokens.other_account) == 0
        assert await program.queries.custody_balance(subscription.plan_address) == PRICE


class TestConcurrency:
    """Racing collections for the same period."""

    @pytest.mark.asyncio
    async def test_only_one_concurrent_collection_wins(self, program, subscription, clock):
        clock.set(DAY)
        request = CollectPaymentRequest(subscriber="alice", plan=subscription.plan_address)

        results = await asyncio.gather(
            program._collect.execute(request),
            program._collect.execute(request),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], TransactionConflictError | PaymentNotDueError)

        sub = await program.queries.get_subscription(subscription.subscription_address)
        assert sub.payment_nonce == 1
        assert await program.queries.custody_balance(subscription.plan_address) == PRICE


class TestBootstrap:
    """Wiring through create_in_memory_program."""

    @pytest.mark.asyncio
    async def test_full_flow(self):
        clock = ManualClock(0)
        sink = InMemoryEventSink()
        program = create_in_memory_program(
            BillingConfig(program_id="staging"),
            clock=clock,
            event_sink=sink,
            configure_logging=False,
        )

        await program.initialize_registry(authority="admin")
        mint = (await program.create_mint(authority="treasury", symbol="USDC")).address
        alice_account = (await program.open_account(mint=str(mint), owner="alice")).address
        acme_account = (await program.open_account(mint=str(mint), owner="acme")).address
        assert acme_account == program.queries.token_account_address("acme", mint)
        await program.mint_to(
            mint=str(mint), destination=str(alice_account), authority="treasury", amount=PRICE
        )

        plan = await program.create_plan(**PlanRequestBuilder(mint).build())
        await program.subscribe(subscriber="alice", plan=plan.plan_address)
        await program.approve_collection(
            subscriber="alice",
            plan=plan.plan_address,
            payment_account=str(alice_account),
            allowance=PRICE,
        )

        clock.advance(DAY)
        report = await program.processor.run_once()
        assert report.total_collected == PRICE

        await program.withdraw_funds(provider="acme", plan_id="pro", destination=str(acme_account))
        assert await program.balance_of(acme_account) == PRICE

        # The program id namespaces every address
        default = create_in_memory_program(BillingConfig(), clock=clock, configure_logging=False)
        assert default.queries.plan_address("acme", "pro") != program.queries.plan_address(
            "acme", "pro"
        )

        assert await program.store.scan(Plan)
        assert len(await program.store.scan(Subscription)) == 1
        assert [e.event_type for e in sink.events] == [
            "RegistryInitialized",
            "PlanCreated",
            "SubscriptionCreated",
            "CollectionApproved",
            "PaymentProcessed",
            "FundsWithdrawn",
        ]
