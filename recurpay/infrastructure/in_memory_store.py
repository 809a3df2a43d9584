"""In-memory implementation of the LedgerStorePort.

Transactions use optimistic concurrency: every address a transaction reads or
writes is pinned to the revision it saw, and the commit is rejected with
:class:`TransactionConflictError` if any of them moved in the meantime. The
losing caller retries from scratch.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar

from ..domain.exceptions import (
    RecordAlreadyExistsError,
    RecordNotFoundError,
    TransactionConflictError,
)
from ..domain.models import LedgerRecord
from ..domain.value_objects import Address
from ..ports.logger import LoggerPort
from ..ports.store import LedgerStorePort, TransactionPort

R = TypeVar("R", bound=LedgerRecord)


@dataclass(frozen=True)
class _Entry:
    record: LedgerRecord
    revision: int


class InMemoryTransaction(TransactionPort):
    """Snapshot-isolated unit of work over an :class:`InMemoryLedgerStore`."""

    def __init__(self, store: InMemoryLedgerStore) -> None:
        self._store = store
        # Revision observed per address; 0 means "absent when first read"
        self._observed: dict[Address, int] = {}
        self._staged: dict[Address, LedgerRecord] = {}

    def _observe(self, address: Address) -> _Entry | None:
        entry = self._store._entries.get(address)
        self._observed.setdefault(address, entry.revision if entry else 0)
        return entry

    def _current(self, address: Address) -> LedgerRecord | None:
        if address in self._staged:
            return self._staged[address]
        entry = self._observe(address)
        return entry.record if entry else None

    async def find(self, address: Address, record_type: type[R]) -> R | None:
        record = self._current(address)
        if record is None:
            return None
        if not isinstance(record, record_type):
            raise RecordNotFoundError(record_type.__name__, str(address))
        return record.snapshot()  # type: ignore[return-value]

    async def get(self, address: Address, record_type: type[R]) -> R:
        record = await self.find(address, record_type)
        if record is None:
            raise RecordNotFoundError(record_type.__name__, str(address))
        return record

    async def exists(self, address: Address) -> bool:
        return self._current(address) is not None

    async def create(self, record: LedgerRecord) -> None:
        if await self.exists(record.address):
            raise RecordAlreadyExistsError(str(record.address))
        self._staged[record.address] = record.snapshot()

    async def update(self, record: LedgerRecord) -> None:
        current = self._current(record.address)
        if current is None or type(current) is not type(record):
            raise RecordNotFoundError(type(record).__name__, str(record.address))
        self._staged[record.address] = record.snapshot()

    @property
    def staged_addresses(self) -> list[Address]:
        return list(self._staged)


class InMemoryLedgerStore(LedgerStorePort):
    """In-memory record store for tests, simulations and local development."""

    def __init__(self, logger: LoggerPort | None = None) -> None:
        self._entries: dict[Address, _Entry] = {}
        self._commit_lock = asyncio.Lock()
        self._logger = logger or self._create_default_logger()
        self.commits = 0
        self.conflicts = 0

    def _create_default_logger(self) -> LoggerPort:
        from .simple_logger import SimpleLogger

        return SimpleLogger("recurpay.infrastructure.store")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TransactionPort]:
        tx = InMemoryTransaction(self)
        yield tx
        await self._commit(tx)

    async def _commit(self, tx: InMemoryTransaction) -> None:
        async with self._commit_lock:
            stale = [
                str(address)
                for address, revision in tx._observed.items()
                if self.revision(address) != revision
            ]
            if stale:
                self.conflicts += 1
                self._logger.warning("Transaction conflict", addresses=stale)
                raise TransactionConflictError(stale)

            for address, record in tx._staged.items():
                self._entries[address] = _Entry(record=record, revision=self.revision(address) + 1)
            self.commits += 1

        if tx._staged:
            self._logger.debug("Transaction committed", writes=len(tx._staged))

    def revision(self, address: Address) -> int:
        """Committed revision of ``address``; 0 if nothing was ever stored there."""
        entry = self._entries.get(address)
        return entry.revision if entry else 0

    async def find(self, address: Address, record_type: type[R]) -> R | None:
        entry = self._entries.get(address)
        if entry is None or not isinstance(entry.record, record_type):
            return None
        return entry.record.snapshot()  # type: ignore[return-value]

    async def scan(self, record_type: type[R]) -> Sequence[R]:
        return [
            entry.record.snapshot()  # type: ignore[misc]
            for entry in self._entries.values()
            if isinstance(entry.record, record_type)
        ]

    def clear(self) -> None:
        """Drop every record (useful for testing)."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
