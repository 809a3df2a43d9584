"""Ledger store port - persistence and atomic execution for billing records.

Every billing operation runs inside one transaction: reads see a snapshot,
writes are staged, and the commit either applies every staged write or none.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import TypeVar

from ..domain.models import LedgerRecord
from ..domain.value_objects import Address

R = TypeVar("R", bound=LedgerRecord)


class TransactionPort(ABC):
    """A unit of work against the ledger store.

    Records returned by a transaction are private copies; mutations become
    visible to others only through :meth:`create` / :meth:`update` followed by
    a successful commit.
    """

    @abstractmethod
    async def find(self, address: Address, record_type: type[R]) -> R | None:
        """Read a record, or ``None`` if nothing lives at ``address``.

        Raises:
            RecordNotFoundError: If a record of another type lives there
        """
        ...

    @abstractmethod
    async def get(self, address: Address, record_type: type[R]) -> R:
        """Read a record that must exist.

        Raises:
            RecordNotFoundError: If no record of ``record_type`` lives at ``address``
        """
        ...

    @abstractmethod
    async def exists(self, address: Address) -> bool:
        """Check whether any record lives at ``address``."""
        ...

    @abstractmethod
    async def create(self, record: LedgerRecord) -> None:
        """Stage a new record.

        Raises:
            RecordAlreadyExistsError: If the address is taken
        """
        ...

    @abstractmethod
    async def update(self, record: LedgerRecord) -> None:
        """Stage a new version of an existing record.

        Raises:
            RecordNotFoundError: If the record was never created
        """
        ...


class LedgerStorePort(ABC):
    """Abstract record store with atomic, isolated transactions."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[TransactionPort]:
        """Open a transaction.

        Leaving the context normally commits; leaving it with an exception
        discards every staged write and re-raises.

        Raises:
            TransactionConflictError: On commit, if a record read or written
                was changed by another committed transaction
        """
        ...

    @abstractmethod
    async def find(self, address: Address, record_type: type[R]) -> R | None:
        """Read the latest committed version of a record."""
        ...

    @abstractmethod
    async def scan(self, record_type: type[R]) -> Sequence[R]:
        """List every committed record of ``record_type``."""
        ...
