"""Token program port - fungible balances moved under an authority.

Token records live in the same ledger store as billing records, so token
operations take the caller's transaction and commit or roll back with it.
"""

from abc import ABC, abstractmethod

from ..domain.models import HoldingAccount, Mint
from ..domain.value_objects import Address, Identity
from .store import TransactionPort

Authority = Identity | Address


class TokenProgramPort(ABC):
    """Abstract token-transfer primitive."""

    @abstractmethod
    async def create_mint(
        self,
        tx: TransactionPort,
        *,
        authority: Identity,
        symbol: str,
        decimals: int = 6,
    ) -> Mint:
        """Register a new mint at the address derived from ``authority`` and ``symbol``.

        Raises:
            RecordAlreadyExistsError: If ``authority`` already issues ``symbol``
        """
        ...

    @abstractmethod
    async def get_mint(self, tx: TransactionPort, address: Address) -> Mint | None:
        """Look up a mint; ``None`` if the address is not a mint."""
        ...

    @abstractmethod
    async def open_account(
        self,
        tx: TransactionPort,
        *,
        mint: Address,
        owner: Identity,
    ) -> HoldingAccount:
        """Create the empty holding account ``owner`` keeps for ``mint``.

        The address is derived from ``owner`` and ``mint``.

        Raises:
            InvalidTokenMintError: If ``mint`` is unknown
            RecordAlreadyExistsError: If the account is already open
        """
        ...

    @abstractmethod
    async def open_program_account(
        self,
        tx: TransactionPort,
        *,
        address: Address,
        mint: Address,
        authority: Address,
    ) -> HoldingAccount:
        """Create an empty account at a billing-derived ``address``.

        Only the billing use cases call this; ``authority`` is the derived
        record address that may move the funds.

        Raises:
            InvalidTokenMintError: If ``mint`` is unknown
            RecordAlreadyExistsError: If the address is taken
        """
        ...

    @abstractmethod
    async def get_account(self, tx: TransactionPort, address: Address) -> HoldingAccount:
        """Read a holding account.

        Raises:
            RecordNotFoundError: If there is no holding account at ``address``
        """
        ...

    @abstractmethod
    async def mint_to(
        self,
        tx: TransactionPort,
        *,
        mint: Address,
        destination: Address,
        authority: Identity,
        amount: int,
    ) -> HoldingAccount:
        """Issue new tokens into ``destination``; only the mint authority may do this."""
        ...

    @abstractmethod
    async def approve(
        self,
        tx: TransactionPort,
        *,
        account: Address,
        owner: Identity,
        delegate: Address,
        amount: int,
    ) -> HoldingAccount:
        """Let ``delegate`` move up to ``amount`` from ``account``; replaces any prior approval."""
        ...

    @abstractmethod
    async def transfer(
        self,
        tx: TransactionPort,
        *,
        source: Address,
        destination: Address,
        authority: Authority,
        amount: int,
    ) -> tuple[HoldingAccount, HoldingAccount]:
        """Move ``amount`` from ``source`` to ``destination``.

        ``authority`` must be the source owner or its delegate. Both sides
        change or neither does.

        Raises:
            UnauthorizedError: If ``authority`` may not spend from ``source``
            InvalidTokenMintError: If the accounts hold different mints
            InsufficientFundsError: If balance or delegated allowance is short
            ArithmeticOverflowError: If the destination balance would overflow
        """
        ...
