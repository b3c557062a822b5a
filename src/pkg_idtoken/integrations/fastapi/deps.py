from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials

from .security import DEFAULT_COOKIE_NAME, bearer_scheme, extract_token_from_request
from ..common.validator_factory import IdTokenAuth
from ...domain.exceptions import IdTokenValidationError, KeyRetrievalError


def _not_authenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _to_http_error(exc: IdTokenValidationError) -> HTTPException:
    if isinstance(exc, KeyRetrievalError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Signing keys are temporarily unavailable",
        )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": exc.code, "message": str(exc)},
        headers={"WWW-Authenticate": f'Bearer error="invalid_token", error_description="{exc.code}"'},
    )


@dataclass(slots=True)
class FastAPIIdTokenAuth:
    """
    FastAPI integration for pkg_idtoken.

    Built on top of the framework-agnostic IdTokenAuth facade. Validation
    failures map to 401 with the error code in the body; an unreachable
    key-set endpoint maps to 503 since the token itself may be fine.

    The dependencies are plain functions so FastAPI runs them in its
    threadpool; a key-set fetch blocks the calling thread.
    """

    auth: IdTokenAuth
    cookie_name: str = DEFAULT_COOKIE_NAME

    def get_current_claims(
            self,
            request: Request,
            credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    ) -> Dict[str, Any]:
        """Dependency: require a valid ID token."""
        token = extract_token_from_request(request, credentials, self.cookie_name)
        if token is None:
            raise _not_authenticated()
        try:
            return self.auth.authenticate(token)
        except IdTokenValidationError as exc:
            raise _to_http_error(exc) from exc

    def get_optional_claims(
            self,
            request: Request,
            credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    ) -> Dict[str, Any] | None:
        """Dependency: optional ID token; a missing or bad token means anonymous."""
        token = extract_token_from_request(request, credentials, self.cookie_name)
        if token is None:
            return None
        try:
            return self.auth.authenticate(token)
        except IdTokenValidationError:
            return None
