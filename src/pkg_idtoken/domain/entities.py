from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from .exceptions import IdTokenValidationError


@dataclass(frozen=True, slots=True)
class CompactToken:
    """
    A decoded JWS compact token.

    The encoded header and payload segments are kept next to their decoded
    forms: signatures are always checked against ``signing_input``, the exact
    bytes the issuer signed, never against a re-serialisation of ``header``
    or ``payload``.
    """
    header: Mapping[str, Any]
    payload: Mapping[str, Any]
    header_segment: bytes
    payload_segment: bytes
    signature: bytes

    @property
    def signing_input(self) -> bytes:
        return self.header_segment + b"." + self.payload_segment

    @property
    def algorithm(self) -> str:
        return self.header["alg"]

    @property
    def key_id(self) -> Optional[str]:
        kid = self.header.get("kid")
        return kid if isinstance(kid, str) else None


# --- Verification keys ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class SymmetricKey:
    """Shared secret (the client secret) used for HS256."""
    secret: bytes = field(repr=False)


@dataclass(frozen=True, slots=True)
class AsymmetricKey:
    """
    Public key published by the authority, used for RS256.

    ``public_key`` is a ``cryptography`` RSA public key object.
    """
    public_key: Any = field(repr=False)
    key_id: Optional[str] = None


VerificationKey = SymmetricKey | AsymmetricKey


@dataclass(frozen=True, slots=True)
class KeySet:
    """
    Immutable snapshot of the keys an authority published at ``fetched_at``.

    The cache swaps whole snapshots; a KeySet is never edited in place.
    """
    authority: str
    keys: Tuple[AsymmetricKey, ...]
    fetched_at: datetime

    def select(self, kid: Optional[str]) -> Optional[AsymmetricKey]:
        """
        Pick the key for ``kid``.

        Without a kid the set is only usable when it holds exactly one key.
        """
        if kid is None:
            return self.keys[0] if len(self.keys) == 1 else None
        return next((k for k in self.keys if k.key_id == kid), None)

    def __len__(self) -> int:
        return len(self.keys)


# --- Verdict --------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """
    Result of one validation: either trusted claims or the typed failure.
    """
    claims: Optional[Mapping[str, Any]] = None
    error: Optional[IdTokenValidationError] = None

    def __post_init__(self) -> None:
        if (self.claims is None) == (self.error is None):
            raise ValueError("ValidationOutcome needs exactly one of claims or error")
        if self.claims is not None:
            object.__setattr__(self, "claims", MappingProxyType(dict(self.claims)))

    @classmethod
    def success(cls, claims: Mapping[str, Any]) -> "ValidationOutcome":
        return cls(claims=claims)

    @classmethod
    def failure(cls, error: IdTokenValidationError) -> "ValidationOutcome":
        return cls(error=error)

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    def unwrap(self) -> Mapping[str, Any]:
        """Return the claims, or raise the recorded failure."""
        if self.error is not None:
            raise self.error
        return self.claims
