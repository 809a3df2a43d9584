"""Deterministic record addressing.

Every record lives at an address computed from a domain tag and its logical
key. Anyone who knows the key can recompute the location, so no directory
structure is needed, and use cases reject any caller-supplied address that
does not match the recomputed one before business logic runs.
"""

import hashlib

from .constants import (
    CUSTODY_SEED,
    DEFAULT_PROGRAM_ID,
    MAX_SEED_LENGTH,
    MINT_SEED,
    PLAN_SEED,
    REGISTRY_SEED,
    SUBSCRIPTION_SEED,
    TOKEN_ACCOUNT_SEED,
    TOKEN_PROGRAM_ID,
)
from .exceptions import AddressMismatchError, SeedTooLongError
from .value_objects import Address, Identity

Seed = str | bytes | Identity | Address


def _seed_bytes(seed: Seed) -> bytes:
    if isinstance(seed, Identity | Address):
        raw = seed.to_seed()
    elif isinstance(seed, str):
        raw = seed.encode()
    else:
        raw = seed
    if len(raw) > MAX_SEED_LENGTH:
        raise SeedTooLongError(raw.decode(errors="replace"), MAX_SEED_LENGTH)
    return raw


def derive_address(
    domain_tag: str, *key_fields: Seed, program_id: str = DEFAULT_PROGRAM_ID
) -> Address:
    """Derive the address for ``domain_tag`` and ``key_fields``.

    Fields are length-prefixed so that ("ab", "c") and ("a", "bc") never
    collide. The program id namespaces deployments.
    """
    digest = hashlib.sha256()
    for part in (program_id.encode(), _seed_bytes(domain_tag), *map(_seed_bytes, key_fields)):
        digest.update(len(part).to_bytes(1, "big"))
        digest.update(part)
    return Address(value=digest.hexdigest())


def mint_address(authority: Identity, symbol: str) -> Address:
    """Address of the mint ``authority`` issues under ``symbol``."""
    return derive_address(MINT_SEED, authority, symbol, program_id=TOKEN_PROGRAM_ID)


def token_account_address(owner: Identity | Address, mint: Address) -> Address:
    """Address of the holding account ``owner`` keeps for ``mint``.

    One account per owner and mint. Program-owned accounts such as plan
    custody are opened at billing addresses instead.
    """
    return derive_address(TOKEN_ACCOUNT_SEED, owner, mint, program_id=TOKEN_PROGRAM_ID)


class AddressBook:
    """Address derivation bound to one program id.

    Wraps :func:`derive_address` with the record layouts used by the billing
    program.
    """

    def __init__(self, program_id: str = DEFAULT_PROGRAM_ID):
        self.program_id = program_id

    def registry(self) -> Address:
        return derive_address(REGISTRY_SEED, program_id=self.program_id)

    def plan(self, provider: Identity, plan_id: str) -> Address:
        return derive_address(PLAN_SEED, provider, plan_id, program_id=self.program_id)

    def subscription(self, subscriber: Identity, plan: Address) -> Address:
        return derive_address(SUBSCRIPTION_SEED, subscriber, plan, program_id=self.program_id)

    def custody(self, provider: Identity, plan_id: str) -> Address:
        return derive_address(CUSTODY_SEED, provider, plan_id, program_id=self.program_id)

    @staticmethod
    def verify(kind: str, supplied: Address | None, derived: Address) -> Address:
        """Return ``derived`` if ``supplied`` is absent or matches it."""
        if supplied is not None and supplied != derived:
            raise AddressMismatchError(kind, str(supplied), str(derived))
        return derived
