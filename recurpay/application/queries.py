"""Read-side queries over committed billing records.

Queries never open a transaction; they read the latest committed versions
and return detached copies.
"""

from __future__ import annotations

from ..domain.addressing import AddressBook, mint_address, token_account_address
from ..domain.aggregates import Plan, Registry, Subscription
from ..domain.enums import SubscriptionState
from ..domain.models import HoldingAccount
from ..domain.services import PaymentEligibilityService
from ..domain.value_objects import Address, Identity, as_address, as_identity
from ..ports.store import LedgerStorePort


class BillingQueries:
    """Lookups used by dashboards, clients and the payment processor."""

    def __init__(
        self,
        store: LedgerStorePort,
        address_book: AddressBook | None = None,
        eligibility: PaymentEligibilityService | None = None,
    ):
        self._store = store
        self._addresses = address_book or AddressBook()
        self._eligibility = eligibility or PaymentEligibilityService()

    # Address helpers

    def registry_address(self) -> Address:
        return self._addresses.registry()

    def plan_address(self, provider: Identity | str, plan_id: str) -> Address:
        return self._addresses.plan(as_identity(provider), plan_id)

    def subscription_address(self, subscriber: Identity | str, plan: Address | str) -> Address:
        return self._addresses.subscription(as_identity(subscriber), as_address(plan))

    def custody_address(self, provider: Identity | str, plan_id: str) -> Address:
        return self._addresses.custody(as_identity(provider), plan_id)

    def mint_address(self, authority: Identity | str, symbol: str) -> Address:
        return mint_address(as_identity(authority), symbol)

    def token_account_address(self, owner: Identity | str, mint: Address | str) -> Address:
        return token_account_address(as_identity(owner), as_address(mint))

    # Records

    async def get_registry(self) -> Registry | None:
        return await self._store.find(self.registry_address(), Registry)

    async def get_plan(self, plan: Address | str) -> Plan | None:
        return await self._store.find(as_address(plan), Plan)

    async def get_subscription(self, subscription: Address | str) -> Subscription | None:
        return await self._store.find(as_address(subscription), Subscription)

    async def get_holding_account(self, account: Address | str) -> HoldingAccount | None:
        return await self._store.find(as_address(account), HoldingAccount)

    async def custody_balance(self, plan: Address | str) -> int:
        """Balance currently held in a plan's custody account."""
        record = await self.get_plan(plan)
        if record is None:
            return 0
        custody = await self.get_holding_account(record.custody_address)
        return custody.balance if custody else 0

    async def list_provider_plans(
        self, provider: Identity | str, *, active_only: bool = False
    ) -> list[Plan]:
        """Plans owned by ``provider``, oldest first."""
        owner = as_identity(provider)
        plans = [
            plan
            for plan in await self._store.scan(Plan)
            if plan.owner == owner and (plan.is_active or not active_only)
        ]
        return sorted(plans, key=lambda p: (p.created_at, p.plan_id))

    async def list_subscriber_subscriptions(
        self, subscriber: Identity | str, *, state: SubscriptionState | None = None
    ) -> list[Subscription]:
        """Subscriptions held by ``subscriber``, optionally filtered by state."""
        owner = as_identity(subscriber)
        subscriptions = [
            sub
            for sub in await self._store.scan(Subscription)
            if sub.subscriber == owner and (state is None or sub.state == state)
        ]
        return sorted(subscriptions, key=lambda s: (s.start_time, str(s.address)))

    async def list_plan_subscriptions(self, plan: Address | str) -> list[Subscription]:
        plan_address = as_address(plan)
        return [sub for sub in await self._store.scan(Subscription) if sub.plan == plan_address]

    async def list_due_subscriptions(
        self, now: int, *, limit: int | None = None
    ) -> list[Subscription]:
        """Active, unpaused subscriptions inside their collection window.

        Subscriptions without an approved payment account are left out.
        Ordered by due time so the longest-overdue are collected first.
        """
        due = [
            sub
            for sub in await self._store.scan(Subscription)
            if sub.state == SubscriptionState.ACTIVE
            and sub.payment_account is not None
            and self._eligibility.is_due(sub, now)
        ]
        due.sort(key=lambda s: (s.next_payment_due, str(s.address)))
        return due if limit is None else due[:limit]
