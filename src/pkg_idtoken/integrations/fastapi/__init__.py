from __future__ import annotations

from .deps import FastAPIIdTokenAuth
from .security import bearer_scheme, extract_token_from_request
from ..common.validator_factory import IdTokenAuth, create_id_token_auth_from_settings
from ...config.settings import IdTokenSettings


def create_fastapi_id_token_auth(settings: IdTokenSettings) -> FastAPIIdTokenAuth:
    """
    High-level helper for FastAPI apps:

    - Creates IdTokenAuth from settings
    - Wraps it in FastAPIIdTokenAuth, exposing dependencies like:

        fastapi_auth.get_current_claims
        fastapi_auth.get_optional_claims
    """
    auth: IdTokenAuth = create_id_token_auth_from_settings(settings)
    return FastAPIIdTokenAuth(auth=auth)


__all__ = [
    "FastAPIIdTokenAuth",
    "bearer_scheme",
    "create_fastapi_id_token_auth",
    "extract_token_from_request",
]
