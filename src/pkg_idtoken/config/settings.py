from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from ..domain.constants import (
    DEFAULT_JWKS_PATH,
    DEFAULT_KEY_SET_TTL,
    DEFAULT_LEEWAY,
    DEFAULT_MIN_REFRESH_INTERVAL,
    SecretEncoding,
)


@dataclass(slots=True)
class IdTokenSettings:
    """
    ID token validation settings.

    Host code decides how to construct this (env, config file, etc.).
    """
    issuer: str
    client_id: str
    client_secret: Optional[str] = None
    secret_encoding: SecretEncoding = SecretEncoding.UTF8
    algorithm: Optional[str] = None
    leeway_seconds: float = DEFAULT_LEEWAY.total_seconds()

    # Key-set retrieval
    jwks_uri: Optional[str] = None
    jwks_path: str = DEFAULT_JWKS_PATH
    http_timeout: float = 10.0
    verify_ssl: bool = True
    min_refresh_seconds: float = DEFAULT_MIN_REFRESH_INTERVAL.total_seconds()
    cache_ttl_seconds: Optional[float] = DEFAULT_KEY_SET_TTL.total_seconds()

    @property
    def leeway(self) -> timedelta:
        return timedelta(seconds=self.leeway_seconds)

    @property
    def min_refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.min_refresh_seconds)

    @property
    def cache_ttl(self) -> Optional[timedelta]:
        if not self.cache_ttl_seconds:
            return None
        return timedelta(seconds=self.cache_ttl_seconds)
