from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError
from requests import Session

from ...domain.constants import DEFAULT_JWKS_PATH
from ...domain.entities import AsymmetricKey, KeySet
from ...domain.exceptions import KeyRetrievalError

logger = logging.getLogger(__name__)


def jwks_uri_for(authority: str, path: str = DEFAULT_JWKS_PATH) -> str:
    """
    ``https://tenant.example`` -> ``https://tenant.example/.well-known/jwks.json``
    """
    base = authority.strip()
    base = base if base.endswith("/") else base + "/"
    return base + path.lstrip("/")


def _public_key_from_x5c(chain: Any) -> Optional[RSAPublicKey]:
    if not isinstance(chain, list) or not chain or not isinstance(chain[0], str):
        return None
    try:
        cert = x509.load_der_x509_certificate(base64.b64decode(chain[0]))
    except (binascii.Error, ValueError):
        return None
    key = cert.public_key()
    return key if isinstance(key, RSAPublicKey) else None


def parse_key_set(authority: str, document: Any, fetched_at: datetime) -> KeySet:
    """
    Turn a JWKS document into a KeySet.

    Keys that are not RSA signing keys are skipped. RSA keys are read from
    ``n``/``e`` and fall back to the first ``x5c`` certificate.

    Raises:
        KeyRetrievalError when the document holds no usable key
    """
    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise KeyRetrievalError(f"Key set of {authority} has no 'keys' list")

    keys: List[AsymmetricKey] = []
    for jwk in document["keys"]:
        if not isinstance(jwk, dict):
            continue
        if jwk.get("kty") != "RSA" or jwk.get("use", "sig") != "sig":
            continue

        kid = jwk.get("kid") if isinstance(jwk.get("kid"), str) else None
        public_key: Any = None
        if "n" in jwk and "e" in jwk:
            try:
                public_key = RSAAlgorithm.from_jwk(jwk)
            except (InvalidKeyError, ValueError, TypeError):
                public_key = None
        if public_key is None:
            public_key = _public_key_from_x5c(jwk.get("x5c"))
        if not isinstance(public_key, RSAPublicKey):
            logger.debug("Skipping unusable key %r published by %s", kid, authority)
            continue

        keys.append(AsymmetricKey(public_key=public_key, key_id=kid))

    if not keys:
        raise KeyRetrievalError(f"Key set of {authority} contains no usable RSA signing key")

    return KeySet(authority=authority, keys=tuple(keys), fetched_at=fetched_at)


class RequestsKeySetFetcher:
    """
    Adapter implementing KeySetFetcher over HTTP with ``requests``.

    The key-set URL is either given explicitly per authority (``jwks_uris``)
    or derived as ``<authority>/<jwks_path>``.
    """

    def __init__(
        self,
        *,
        jwks_path: str = DEFAULT_JWKS_PATH,
        jwks_uris: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        verify_ssl: bool = True,
        session: Optional[Session] = None,
    ) -> None:
        self._jwks_path = jwks_path
        self._jwks_uris = dict(jwks_uris or {})
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._session = session or Session()

    def close(self) -> None:
        self._session.close()

    def uri_for(self, authority: str) -> str:
        return self._jwks_uris.get(authority) or jwks_uri_for(authority, self._jwks_path)

    # ------------------------------------------------------------------ #
    # Port implementation
    # ------------------------------------------------------------------ #

    def fetch(self, authority: str, fetched_at: datetime) -> KeySet:
        uri = self.uri_for(authority)
        logger.debug("Fetching key set for %s from %s", authority, uri)

        try:
            response = self._session.get(
                uri,
                timeout=self._timeout,
                verify=self._verify_ssl,
                headers={"Accept": "application/json"},
            )
        except requests.RequestException as exc:
            raise KeyRetrievalError(f"Key set request to {uri} failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise KeyRetrievalError(
                f"Key set request to {uri} failed with HTTP {response.status_code}"
            )

        try:
            document = response.json()
        except ValueError as exc:
            raise KeyRetrievalError(f"Key set at {uri} is not valid JSON") from exc

        return parse_key_set(authority, document, fetched_at)
