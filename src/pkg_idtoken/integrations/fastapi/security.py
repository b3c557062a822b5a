from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

# Expose this so apps can plug it into dependencies if they want OpenAPI security
bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_COOKIE_NAME = "id_token"
BEARER_PREFIX = "Bearer "


def extract_token_from_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
    cookie_name: str = DEFAULT_COOKIE_NAME,
) -> Optional[str]:
    """
    Find the ID token of a request.

    Lookup order: parsed bearer credentials, raw ``Authorization`` header,
    then the ``cookie_name`` cookie. Returns None when there is none.
    """
    candidates = [
        credentials.credentials if credentials is not None else None,
        _bearer_from_header(request.headers.get("Authorization")),
        request.cookies.get(cookie_name),
    ]
    for candidate in candidates:
        token = (candidate or "").strip()
        if token:
            return token
    return None


def _bearer_from_header(header: Optional[str]) -> Optional[str]:
    if header and header.startswith(BEARER_PREFIX):
        return header.removeprefix(BEARER_PREFIX)
    return None
