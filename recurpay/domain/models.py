"""Base record model and token-side records.

Every persisted record lives at a derived :class:`Address`. Records buffer the
domain events they raise until the owning transaction commits.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .constants import U64_MAX
from .enums import RecordKind
from .events import DomainEvent
from .value_objects import Address, Identity


class LedgerRecord(BaseModel):
    """Base class for everything kept in the ledger store."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    kind: ClassVar[RecordKind]

    address: Address

    # Use PrivateAttr for private fields in Pydantic v2
    _events: list[DomainEvent] = PrivateAttr(default_factory=list)

    def get_uncommitted_events(self) -> list[DomainEvent]:
        """Get all uncommitted domain events."""
        return self._events.copy()

    def mark_events_committed(self) -> None:
        """Mark all events as committed."""
        self._events.clear()

    def _record_event(self, event: DomainEvent) -> None:
        self._events.append(event)

    def snapshot(self) -> LedgerRecord:
        """Detached deep copy without pending events, as the store keeps it."""
        copy = self.model_copy(deep=True)
        copy.mark_events_committed()
        return copy


class Mint(LedgerRecord):
    """A fungible token definition."""

    kind: ClassVar[RecordKind] = RecordKind.MINT

    authority: Identity
    decimals: int = Field(default=6, ge=0, le=18)
    supply: int = Field(default=0, ge=0, le=U64_MAX)


class HoldingAccount(LedgerRecord):
    """A balance of one mint controlled by one owner.

    ``owner`` is either a signing identity or a program-derived address (for
    custody accounts, the plan address). An optional delegate may move up to
    ``delegated_amount`` on the owner's behalf.
    """

    kind: ClassVar[RecordKind] = RecordKind.HOLDING_ACCOUNT

    owner: Identity | Address
    mint: Address
    balance: int = Field(default=0, ge=0, le=U64_MAX)
    delegate: Address | None = None
    delegated_amount: int = Field(default=0, ge=0, le=U64_MAX)

    def is_owned_by(self, authority: Any) -> bool:
        return self.owner == authority
