from __future__ import annotations

import os
from typing import Optional

from ..domain.constants import SecretEncoding
from .settings import IdTokenSettings


def _bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _float(key: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{key} must be a number, got {raw!r}") from exc


def settings_from_env() -> IdTokenSettings:
    """
    Build IdTokenSettings from ``OIDC_*`` environment variables.

    Raises:
        RuntimeError when OIDC_ISSUER or OIDC_CLIENT_ID is missing
    """
    issuer = os.getenv("OIDC_ISSUER")
    client_id = os.getenv("OIDC_CLIENT_ID")
    if not all([issuer, client_id]):
        missing = [
            n
            for n, v in [
                ("OIDC_ISSUER", issuer),
                ("OIDC_CLIENT_ID", client_id),
            ]
            if not v
        ]
        raise RuntimeError(f"Missing ID token settings: {', '.join(missing)}")

    defaults = IdTokenSettings(issuer=issuer, client_id=client_id)
    return IdTokenSettings(
        issuer=issuer,
        client_id=client_id,
        client_secret=os.getenv("OIDC_CLIENT_SECRET") or None,
        secret_encoding=(
            SecretEncoding.BASE64URL
            if _bool("OIDC_CLIENT_SECRET_BASE64", False)
            else SecretEncoding.UTF8
        ),
        algorithm=os.getenv("OIDC_ALGORITHM") or None,
        leeway_seconds=_float("OIDC_LEEWAY_SECONDS", defaults.leeway_seconds),
        jwks_uri=os.getenv("OIDC_JWKS_URI") or None,
        http_timeout=_float("OIDC_HTTP_TIMEOUT", defaults.http_timeout),
        verify_ssl=_bool("VERIFY_SSL", True),
        min_refresh_seconds=_float("OIDC_MIN_REFRESH_SECONDS", defaults.min_refresh_seconds),
        cache_ttl_seconds=_float("OIDC_CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
    )
