"""Domain value objects following Domain-Driven Design principles.

Identities and addresses are kept distinct from plain strings so that a
caller-supplied identity can never be confused with a derived record address.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import AddressMismatchError, UnauthorizedError


class Identity(BaseModel):
    """Value object representing a signing identity (provider, subscriber, authority).

    Identities are also used as address derivation seeds, so they are limited
    to 32 bytes.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    value: str = Field(..., min_length=1, max_length=32, description="The identity key")

    @field_validator("value")
    @classmethod
    def validate_identity(cls, v: str) -> str:
        """Identities may contain letters, digits, dots, hyphens and underscores."""
        if not re.match(r"^[A-Za-z0-9._-]+$", v):
            raise ValueError(
                f"Invalid identity '{v}'. Use letters, digits, dots, hyphens or underscores."
            )
        return v

    def to_seed(self) -> bytes:
        """Bytes used when this identity takes part in address derivation."""
        return self.value.encode()

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if isinstance(other, Identity):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other
        return False

    def __hash__(self) -> int:
        """Make hashable for use in sets and dicts."""
        return hash(self.value)


class Address(BaseModel):
    """Value object representing a deterministically derived record address.

    The value is the hex rendering of a 32-byte digest.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    value: str = Field(..., min_length=64, max_length=64, description="Hex-encoded address")

    @field_validator("value")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Addresses are 64 lowercase hex characters."""
        v = v.lower()
        if not re.match(r"^[0-9a-f]{64}$", v):
            raise ValueError(f"Invalid address '{v}'. Expected 64 hex characters.")
        return v

    def to_seed(self) -> bytes:
        """Raw 32-byte form used when an address seeds another derivation."""
        return bytes.fromhex(self.value)

    @property
    def short(self) -> str:
        """Abbreviated form for log lines."""
        return f"{self.value[:8]}..{self.value[-4:]}"

    def __str__(self) -> str:
        """String representation returns the value."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if isinstance(other, Address):
            return self.value == other.value
        if isinstance(other, str):
            return self.value == other.lower()
        return False

    def __hash__(self) -> int:
        """Make hashable for use in sets and dicts."""
        return hash(self.value)


def as_identity(value: "Identity | str", role: str = "identity") -> Identity:
    """Coerce a raw string into an :class:`Identity`.

    Raises:
        UnauthorizedError: If ``value`` is not a well-formed identity
    """
    if isinstance(value, Identity):
        return value
    try:
        return Identity(value=value)
    except PydanticValidationError as e:
        raise UnauthorizedError(
            f"Malformed {role}", details={"role": role, "value": str(value)}
        ) from e


def as_address(value: "Address | str", kind: str = "record") -> Address:
    """Coerce a raw string into an :class:`Address`.

    Raises:
        AddressMismatchError: If ``value`` is not a well-formed address
    """
    if isinstance(value, Address):
        return value
    try:
        return Address(value=value)
    except PydanticValidationError as e:
        raise AddressMismatchError(kind, str(value)) from e


def format_period_duration(seconds: int) -> str:
    """Render a billing period the way plan listings display it.

    Only the largest whole unit is shown, e.g. ``86400 -> "1 day"``.
    """
    days, remainder = divmod(seconds, 86_400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''}"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"
