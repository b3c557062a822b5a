from __future__ import annotations

import binascii
from typing import Optional

from jwt.utils import base64url_decode

from ...adapters.jwks.cache import KeySetCache
from ...domain.constants import SecretEncoding, SigningAlgorithm
from ...domain.entities import CompactToken, SymmetricKey, VerificationKey
from ...domain.exceptions import UnsupportedAlgorithmError


def decode_client_secret(secret: str | bytes, encoding: SecretEncoding) -> bytes:
    """
    Client secret -> HMAC key bytes.

    Older tenants hand out base64url-encoded secrets; those must be decoded
    before use.
    """
    if encoding is SecretEncoding.BASE64URL:
        try:
            return base64url_decode(secret)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Client secret is not valid base64url") from exc
    if isinstance(secret, bytes):
        return secret
    return secret.encode("utf-8")


class SigningKeyResolver:
    """
    Resolves the key a token must verify against.

    - HS256: the client secret supplied at construction, never fetched.
    - RS256: a key published by ``authority``, through the KeySetCache.

    The algorithm has already been allow-listed by the caller.
    """

    def __init__(
        self,
        *,
        authority: Optional[str] = None,
        key_sets: Optional[KeySetCache] = None,
        client_secret: str | bytes | None = None,
        secret_encoding: SecretEncoding = SecretEncoding.UTF8,
    ) -> None:
        if (authority is None) != (key_sets is None):
            raise ValueError("authority and key_sets must be given together")

        self._authority = authority
        self._key_sets = key_sets
        self._symmetric: Optional[SymmetricKey] = None
        if client_secret:
            self._symmetric = SymmetricKey(decode_client_secret(client_secret, secret_encoding))

    @property
    def authority(self) -> Optional[str]:
        return self._authority

    def resolve(self, token: CompactToken, algorithm: SigningAlgorithm) -> VerificationKey:
        """
        Raises:
            UnsupportedAlgorithmError
            KeyNotFoundError
            KeyRetrievalError
        """
        if algorithm is SigningAlgorithm.HS256:
            if self._symmetric is None:
                raise UnsupportedAlgorithmError(
                    algorithm.value, "no client secret configured"
                )
            return self._symmetric

        if algorithm is SigningAlgorithm.RS256:
            if self._key_sets is None or self._authority is None:
                raise UnsupportedAlgorithmError(
                    algorithm.value, "no key-set authority configured"
                )
            return self._key_sets.get_key(self._authority, token.key_id)

        raise UnsupportedAlgorithmError(algorithm.value)  # pragma: no cover
