"""
pkg_idtoken

OpenID Connect ID token validation: compact JWS decoding, signing key
resolution with a shared key-set cache, signature verification and claims
enforcement. Framework integrations (FastAPI, CLI) sit on top.
"""

__version__ = "0.1.0"

from .domain.constants import SigningAlgorithm, SecretEncoding
from .domain.entities import (
    CompactToken,
    KeySet,
    SymmetricKey,
    AsymmetricKey,
    ValidationOutcome,
)
from .domain.exceptions import (
    AuthenticationError,
    IdTokenValidationError,
    MalformedTokenError,
    UnsupportedAlgorithmError,
    UnexpectedAlgorithmError,
    KeyNotFoundError,
    KeyRetrievalError,
    SignatureInvalidError,
    InvalidClaimError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidAuthorizedPartyError,
    TokenExpiredError,
    InvalidIssuedAtError,
    TokenNotYetValidError,
    NonceMismatchError,
    AuthTimeExceededError,
    OrganizationMismatchError,
)
from .domain.value_objects import TokenRequirements
from .domain.ports import Clock, KeySetFetcher

from .application.use_cases.resolve_key import SigningKeyResolver
from .application.use_cases.validate_claims import ClaimsValidator
from .application.use_cases.validate_id_token import IdTokenValidator

from .adapters.jose.compact import decode_compact
from .adapters.jose.signature import SignatureVerifier
from .adapters.jwks.cache import KeySetCache
from .adapters.jwks.fetcher import RequestsKeySetFetcher
from .adapters.system_clock import SystemClock

from .config import IdTokenSettings, settings_from_env
from .integrations.common.validator_factory import (
    IdTokenAuth,
    create_id_token_validator,
    create_id_token_auth_from_settings,
)

__all__ = [
    "__version__",
    # domain core
    "SigningAlgorithm",
    "SecretEncoding",
    "CompactToken",
    "KeySet",
    "SymmetricKey",
    "AsymmetricKey",
    "ValidationOutcome",
    "TokenRequirements",
    "Clock",
    "KeySetFetcher",
    # exceptions
    "AuthenticationError",
    "IdTokenValidationError",
    "MalformedTokenError",
    "UnsupportedAlgorithmError",
    "UnexpectedAlgorithmError",
    "KeyNotFoundError",
    "KeyRetrievalError",
    "SignatureInvalidError",
    "InvalidClaimError",
    "InvalidIssuerError",
    "InvalidAudienceError",
    "InvalidAuthorizedPartyError",
    "TokenExpiredError",
    "InvalidIssuedAtError",
    "TokenNotYetValidError",
    "NonceMismatchError",
    "AuthTimeExceededError",
    "OrganizationMismatchError",
    # use cases
    "SigningKeyResolver",
    "ClaimsValidator",
    "IdTokenValidator",
    # adapters
    "decode_compact",
    "SignatureVerifier",
    "KeySetCache",
    "RequestsKeySetFetcher",
    "SystemClock",
    # wiring
    "IdTokenSettings",
    "settings_from_env",
    "IdTokenAuth",
    "create_id_token_validator",
    "create_id_token_auth_from_settings",
]
