# src/pkg_idtoken/domain/value_objects.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from .constants import DEFAULT_LEEWAY, ORGANIZATION_ID_PREFIX, SigningAlgorithm


def _as_timedelta(value: timedelta | int | float | None, name: str) -> Optional[timedelta]:
    """
    Accept a timedelta or a number of seconds.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a timedelta or seconds, got bool")
    if isinstance(value, (int, float)):
        value = timedelta(seconds=value)
    if not isinstance(value, timedelta):
        raise TypeError(f"{name} must be a timedelta or seconds, got {type(value).__name__}")
    if value < timedelta(0):
        raise ValueError(f"{name} must not be negative")
    return value


@dataclass(frozen=True, slots=True)
class TokenRequirements:
    """
    What the caller expects from an ID token.

    - issuer:       exact ``iss`` value, compared byte for byte. Pass it in the
                    form the authority emits (e.g. ``"https://tenant.example/"``
                    with the trailing slash); no normalisation is applied.
    - audience:     this client's id; ``aud`` must equal or contain it.
    - leeway:       clock skew tolerated on ``exp``/``nbf``/``auth_time``.
    - algorithm:    optional pin on the header ``alg``.
    - nonce:        optional expected ``nonce``.
    - max_age:      optional maximum authentication age (needs ``auth_time``).
    - organization: optional organization; ``org_``-prefixed values are ids
                    matched against ``org_id``, anything else is a name
                    matched case-insensitively against ``org_name``.
    """

    issuer: str
    audience: str
    leeway: timedelta = DEFAULT_LEEWAY
    algorithm: Optional[SigningAlgorithm] = None
    nonce: Optional[str] = None
    max_age: Optional[timedelta] = None
    organization: Optional[str] = None

    def __init__(
            self,
            issuer: str,
            audience: str,
            leeway: timedelta | int | float = DEFAULT_LEEWAY,
            algorithm: SigningAlgorithm | str | None = None,
            nonce: str | None = None,
            max_age: timedelta | int | float | None = None,
            organization: str | None = None,
    ) -> None:
        if not issuer:
            raise ValueError("issuer is required")
        if not audience:
            raise ValueError("audience is required")
        if isinstance(algorithm, str):
            algorithm = SigningAlgorithm.from_header(algorithm)

        object.__setattr__(self, "issuer", issuer)
        object.__setattr__(self, "audience", audience)
        object.__setattr__(self, "leeway", _as_timedelta(leeway, "leeway"))
        object.__setattr__(self, "algorithm", algorithm)
        object.__setattr__(self, "nonce", nonce or None)
        object.__setattr__(self, "max_age", _as_timedelta(max_age, "max_age"))
        object.__setattr__(self, "organization", (organization or "").strip() or None)

    @property
    def organization_is_id(self) -> bool:
        return bool(self.organization) and self.organization.startswith(ORGANIZATION_ID_PREFIX)
