"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

from recurpay.application.program import BillingProgram
from recurpay.domain.value_objects import Address
from recurpay.infrastructure.config import BillingConfig
from recurpay.infrastructure.event_sinks import InMemoryEventSink
from recurpay.infrastructure.in_memory_store import InMemoryLedgerStore
from recurpay.infrastructure.system_clock import ManualClock
from recurpay.infrastructure.token_program import InMemoryTokenProgram
from recurpay.ports.logger import LoggerPort
from tests.builders import MINT_AUTHORITY, STARTING_BALANCE, PlanRequestBuilder


@dataclass
class TokenSetup:
    """Mint and accounts prepared for a billing scenario."""

    mint: Address
    subscriber_account: Address
    provider_account: Address
    other_account: Address


@pytest.fixture
def clock():
    """Clock frozen at Unix time 0."""
    return ManualClock(0)


@pytest.fixture
def store():
    """Create an empty in-memory ledger store."""
    return InMemoryLedgerStore()


@pytest.fixture
def token_program():
    return InMemoryTokenProgram()


@pytest.fixture
def event_sink():
    """Create an in-memory event sink."""
    return InMemoryEventSink()


@pytest.fixture
def config():
    """Default configuration, independent of the environment."""
    return BillingConfig()


@pytest.fixture
def mock_logger():
    """Create a mock logger."""
    logger = Mock(spec=LoggerPort)
    logger.bind.return_value = logger
    return logger


@pytest.fixture
def failing_sink():
    """Event sink whose every publish fails."""
    sink = Mock()
    sink.publish = AsyncMock(side_effect=RuntimeError("sink down"))
    return sink


@pytest.fixture
def program(store, token_program, clock, event_sink, config, mock_logger):
    """Billing program over in-memory adapters."""
    return BillingProgram(
        store=store,
        token_program=token_program,
        clock=clock,
        event_sink=event_sink,
        config=config,
        logger=mock_logger,
    )


@pytest_asyncio.fixture
async def tokens(program):
    """Registry plus a funded subscriber account and an empty provider account."""
    await program.initialize_registry(authority="admin")

    mint = (await program.create_mint(authority=MINT_AUTHORITY, symbol="USDC")).address

    setup = TokenSetup(
        mint=mint,
        subscriber_account=(await program.open_account(mint=str(mint), owner="alice")).address,
        provider_account=(await program.open_account(mint=str(mint), owner="acme")).address,
        other_account=(await program.open_account(mint=str(mint), owner="mallory")).address,
    )
    await program.mint_to(
        mint=str(mint),
        destination=str(setup.subscriber_account),
        authority=MINT_AUTHORITY,
        amount=STARTING_BALANCE,
    )
    return setup


@pytest_asyncio.fixture
async def plan(program, tokens):
    """Active daily plan priced at 1_000_000, owned by ``acme``."""
    return await program.create_plan(**PlanRequestBuilder(tokens.mint).build())


@pytest_asyncio.fixture
async def subscription(program, tokens, plan):
    """Alice subscribed at t=0 with collection approved for 10 periods."""
    response = await program.subscribe(subscriber="alice", plan=plan.plan_address)
    await program.approve_collection(
        subscriber="alice",
        plan=plan.plan_address,
        payment_account=str(tokens.subscriber_account),
        allowance=STARTING_BALANCE,
    )
    return response
