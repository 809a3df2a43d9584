"""In-memory token program.

Mints and holding accounts are ledger records, so every token movement is
staged in the caller's transaction and shares its commit or rollback.
"""

from __future__ import annotations

from ..domain.addressing import mint_address, token_account_address
from ..domain.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    InvalidTokenMintError,
    RecordNotFoundError,
    UnauthorizedError,
)
from ..domain.ledger import checked_add_u64, checked_sub
from ..domain.models import HoldingAccount, Mint
from ..domain.value_objects import Address, Identity
from ..ports.store import TransactionPort
from ..ports.token_program import Authority, TokenProgramPort


class InMemoryTokenProgram(TokenProgramPort):
    """Token program whose state lives in the ledger store."""

    async def create_mint(
        self,
        tx: TransactionPort,
        *,
        authority: Identity,
        symbol: str,
        decimals: int = 6,
    ) -> Mint:
        mint = Mint(
            address=mint_address(authority, symbol), authority=authority, decimals=decimals
        )
        await tx.create(mint)
        return mint

    async def get_mint(self, tx: TransactionPort, address: Address) -> Mint | None:
        try:
            return await tx.find(address, Mint)
        except RecordNotFoundError:
            # Something other than a mint lives there
            return None

    async def open_account(
        self,
        tx: TransactionPort,
        *,
        mint: Address,
        owner: Identity,
    ) -> HoldingAccount:
        return await self._open(tx, token_account_address(owner, mint), mint, owner)

    async def open_program_account(
        self,
        tx: TransactionPort,
        *,
        address: Address,
        mint: Address,
        authority: Address,
    ) -> HoldingAccount:
        return await self._open(tx, address, mint, authority)

    async def _open(
        self, tx: TransactionPort, address: Address, mint: Address, owner: Authority
    ) -> HoldingAccount:
        if await self.get_mint(tx, mint) is None:
            raise InvalidTokenMintError(str(mint))

        account = HoldingAccount(address=address, mint=mint, owner=owner)
        await tx.create(account)
        return account

    async def get_account(self, tx: TransactionPort, address: Address) -> HoldingAccount:
        return await tx.get(address, HoldingAccount)

    async def mint_to(
        self,
        tx: TransactionPort,
        *,
        mint: Address,
        destination: Address,
        authority: Identity,
        amount: int,
    ) -> HoldingAccount:
        if amount <= 0:
            raise InvalidAmountError(amount)

        mint_record = await self.get_mint(tx, mint)
        if mint_record is None:
            raise InvalidTokenMintError(str(mint))
        if mint_record.authority != authority:
            raise UnauthorizedError(
                "Only the mint authority may issue tokens", details={"mint": str(mint)}
            )

        account = await self.get_account(tx, destination)
        if account.mint != mint:
            raise InvalidTokenMintError(str(account.mint), expected=str(mint))

        mint_record.supply = checked_add_u64(mint_record.supply, amount, field="supply")
        account.balance = checked_add_u64(account.balance, amount, field="balance")
        await tx.update(mint_record)
        await tx.update(account)
        return account

    async def approve(
        self,
        tx: TransactionPort,
        *,
        account: Address,
        owner: Identity,
        delegate: Address,
        amount: int,
    ) -> HoldingAccount:
        holding = await self.get_account(tx, account)
        if not holding.is_owned_by(owner):
            raise UnauthorizedError(
                "Only the account owner may approve a delegate",
                details={"account": str(account), "caller": str(owner)},
            )

        holding.delegate = delegate if amount > 0 else None
        holding.delegated_amount = amount
        await tx.update(holding)
        return holding

    async def transfer(
        self,
        tx: TransactionPort,
        *,
        source: Address,
        destination: Address,
        authority: Authority,
        amount: int,
    ) -> tuple[HoldingAccount, HoldingAccount]:
        if amount <= 0:
            raise InvalidAmountError(amount)
        if source == destination:
            raise UnauthorizedError(
                "Source and destination must differ", details={"account": str(source)}
            )

        src = await self.get_account(tx, source)
        dst = await self.get_account(tx, destination)
        if src.mint != dst.mint:
            raise InvalidTokenMintError(str(dst.mint), expected=str(src.mint))

        as_delegate = not src.is_owned_by(authority)
        if as_delegate and (src.delegate is None or src.delegate != authority):
            raise UnauthorizedError(
                "Authority may not spend from source",
                details={"account": str(source), "authority": str(authority)},
            )

        if src.balance < amount:
            raise InsufficientFundsError(str(source), amount, src.balance)
        if as_delegate:
            if src.delegated_amount < amount:
                raise InsufficientFundsError(str(source), amount, src.delegated_amount)
            src.delegated_amount = checked_sub(
                src.delegated_amount, amount, field="delegated_amount"
            )
            if src.delegated_amount == 0:
                src.delegate = None

        src.balance = checked_sub(src.balance, amount, field="balance")
        dst.balance = checked_add_u64(dst.balance, amount, field="balance")
        await tx.update(src)
        await tx.update(dst)
        return src, dst
