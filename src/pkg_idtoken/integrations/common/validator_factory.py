from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from requests import Session

from ...adapters.jwks.cache import KeySetCache
from ...adapters.jwks.fetcher import RequestsKeySetFetcher
from ...adapters.system_clock import SystemClock
from ...application.use_cases.resolve_key import SigningKeyResolver
from ...application.use_cases.validate_id_token import IdTokenValidator
from ...config.settings import IdTokenSettings
from ...domain.constants import (
    DEFAULT_JWKS_PATH,
    DEFAULT_KEY_SET_TTL,
    DEFAULT_LEEWAY,
    DEFAULT_MIN_REFRESH_INTERVAL,
    SecretEncoding,
    SigningAlgorithm,
)
from ...domain.entities import ValidationOutcome
from ...domain.ports import Clock, KeySetFetcher
from ...domain.value_objects import TokenRequirements


@dataclass(slots=True)
class IdTokenAuth:
    """
    Framework-agnostic ID token facade.

    Bundles a shared IdTokenValidator with the requirements that do not
    change between requests (issuer, audience, leeway, algorithm).
    Per-login values (nonce, max_age, organization) are passed per call.

    Integrations (FastAPI, CLI) adapt this to their own surfaces.
    """

    validator: IdTokenValidator
    issuer: str
    audience: str
    leeway: timedelta = DEFAULT_LEEWAY
    algorithm: Optional[SigningAlgorithm] = None

    def requirements(
            self,
            *,
            nonce: str | None = None,
            max_age: timedelta | int | None = None,
            organization: str | None = None,
    ) -> TokenRequirements:
        return TokenRequirements(
            issuer=self.issuer,
            audience=self.audience,
            leeway=self.leeway,
            algorithm=self.algorithm,
            nonce=nonce,
            max_age=max_age,
            organization=organization,
        )

    def authenticate(self, token: str, **kwargs: Any) -> Dict[str, Any]:
        """Token -> verified claims (or raise IdTokenValidationError)."""
        return self.validator.validate(token, self.requirements(**kwargs))

    def evaluate(self, token: str, **kwargs: Any) -> ValidationOutcome:
        return self.validator.evaluate(token, self.requirements(**kwargs))


def create_id_token_validator(
        *,
        authority: str | None = None,
        client_secret: str | bytes | None = None,
        secret_encoding: SecretEncoding = SecretEncoding.UTF8,
        fetcher: KeySetFetcher | None = None,
        jwks_uri: str | None = None,
        jwks_path: str = DEFAULT_JWKS_PATH,
        http_timeout: float = 10.0,
        verify_ssl: bool = True,
        session: Session | None = None,
        min_refresh_interval: timedelta = DEFAULT_MIN_REFRESH_INTERVAL,
        cache_ttl: timedelta | None = DEFAULT_KEY_SET_TTL,
        clock: Clock | None = None,
) -> IdTokenValidator:
    """
    Wire fetcher -> KeySetCache -> SigningKeyResolver -> IdTokenValidator.

    Without ``authority`` only HS256 tokens can be validated; without
    ``client_secret`` only RS256 tokens can.
    """
    clock = clock or SystemClock()

    key_sets: KeySetCache | None = None
    if authority is not None:
        if fetcher is None:
            fetcher = RequestsKeySetFetcher(
                jwks_path=jwks_path,
                jwks_uris={authority: jwks_uri} if jwks_uri else None,
                timeout=http_timeout,
                verify_ssl=verify_ssl,
                session=session,
            )
        key_sets = KeySetCache(
            fetcher,
            clock=clock,
            min_refresh_interval=min_refresh_interval,
            ttl=cache_ttl,
        )

    resolver = SigningKeyResolver(
        authority=authority,
        key_sets=key_sets,
        client_secret=client_secret,
        secret_encoding=secret_encoding,
    )
    return IdTokenValidator(key_resolver=resolver, clock=clock)


def create_id_token_auth_from_settings(
        settings: IdTokenSettings,
        *,
        fetcher: KeySetFetcher | None = None,
        clock: Clock | None = None,
) -> IdTokenAuth:
    """
    High-level factory: IdTokenSettings -> IdTokenAuth.

    The settings' issuer doubles as the key-set authority.
    """
    validator = create_id_token_validator(
        authority=settings.issuer,
        client_secret=settings.client_secret,
        secret_encoding=settings.secret_encoding,
        fetcher=fetcher,
        jwks_uri=settings.jwks_uri,
        jwks_path=settings.jwks_path,
        http_timeout=settings.http_timeout,
        verify_ssl=settings.verify_ssl,
        min_refresh_interval=settings.min_refresh_interval,
        cache_ttl=settings.cache_ttl,
        clock=clock,
    )
    return IdTokenAuth(
        validator=validator,
        issuer=settings.issuer,
        audience=settings.client_id,
        leeway=settings.leeway,
        algorithm=SigningAlgorithm.from_header(settings.algorithm) if settings.algorithm else None,
    )
