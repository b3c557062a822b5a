class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class IdTokenValidationError(AuthenticationError):
    """
    Base class for every ID token rejection.

    ``code`` is a stable identifier for the exact cause; ``retryable`` says
    whether the caller may retry the whole validation later.
    """
    code = "invalid_token"
    retryable = False


# --- Structure / policy -------------------------------------------------


class MalformedTokenError(IdTokenValidationError):
    """Raised when the token is not a decodable three-segment JWS."""
    code = "malformed_token"


class UnsupportedAlgorithmError(IdTokenValidationError):
    """Raised when the header algorithm is not allow-listed or cannot be served."""
    code = "unsupported_algorithm"

    def __init__(self, algorithm: object, reason: str | None = None) -> None:
        self.algorithm = algorithm
        message = f"Signature algorithm {algorithm!r} is not supported"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnexpectedAlgorithmError(IdTokenValidationError):
    """Raised when the header algorithm differs from the one the caller expects."""
    code = "unexpected_algorithm"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Signature algorithm mismatch: expected {expected!r}, got {actual!r}"
        )


# --- Keys ---------------------------------------------------------------


class KeyNotFoundError(IdTokenValidationError):
    """Raised when no published key matches the token. Retry later, not now."""
    code = "key_not_found"
    retryable = True

    def __init__(self, authority: str, kid: str | None) -> None:
        self.authority = authority
        self.kid = kid
        if kid is None:
            message = f"Token has no 'kid' and key set of {authority} is ambiguous"
        else:
            message = f"No signing key with kid {kid!r} published by {authority}"
        super().__init__(message)


class KeyRetrievalError(IdTokenValidationError):
    """Raised when the key-set document cannot be fetched or parsed."""
    code = "key_retrieval_failed"
    retryable = True


class SignatureInvalidError(IdTokenValidationError):
    """Raised when the signature does not verify. Treat the token as forged."""
    code = "signature_invalid"


# --- Claims -------------------------------------------------------------


class InvalidClaimError(IdTokenValidationError):
    """Base class for claim check failures."""
    code = "invalid_claim"


class InvalidIssuerError(InvalidClaimError):
    code = "invalid_issuer"


class InvalidAudienceError(InvalidClaimError):
    code = "invalid_audience"


class InvalidAuthorizedPartyError(InvalidClaimError):
    code = "invalid_authorized_party"


class TokenExpiredError(InvalidClaimError):
    """Raised when token has expired."""
    code = "token_expired"


class InvalidIssuedAtError(InvalidClaimError):
    code = "invalid_issued_at"


class TokenNotYetValidError(InvalidClaimError):
    code = "token_not_yet_valid"


class NonceMismatchError(InvalidClaimError):
    code = "nonce_mismatch"


class AuthTimeExceededError(InvalidClaimError):
    code = "auth_time_exceeded"


class OrganizationMismatchError(InvalidClaimError):
    code = "organization_mismatch"
