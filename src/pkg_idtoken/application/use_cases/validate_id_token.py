from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from ...adapters.jose.compact import decode_compact
from ...adapters.jose.signature import SignatureVerifier
from ...adapters.system_clock import SystemClock
from ...domain.constants import SigningAlgorithm
from ...domain.entities import ValidationOutcome
from ...domain.exceptions import IdTokenValidationError, UnexpectedAlgorithmError
from ...domain.ports import Clock
from ...domain.value_objects import TokenRequirements
from .resolve_key import SigningKeyResolver
from .validate_claims import ClaimsValidator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IdTokenValidator:
    """
    Application use case: decide whether an ID token can be trusted.

    Sequence (first failure wins):
      1. decode the compact token
      2. allow-list the header ``alg``
      3. enforce the caller's pinned algorithm, if any
      4. resolve the verification key (may hit the key-set cache)
      5. verify the signature
      6. validate the claims

    Nothing network-bound or cryptographic runs before step 1 succeeds.
    The only shared mutable state is the key-set cache behind the resolver,
    so one instance can serve many threads.
    """

    key_resolver: SigningKeyResolver
    signature_verifier: SignatureVerifier = field(default_factory=SignatureVerifier)
    claims_validator: ClaimsValidator = field(default_factory=ClaimsValidator)
    clock: Clock = field(default_factory=SystemClock)

    def validate(self, token: str, requirements: TokenRequirements) -> Dict[str, Any]:
        """
        Validate ``token`` and return its claims.

        Raises:
            IdTokenValidationError (one of its subclasses, naming the cause)
        """
        try:
            return self._validate(token, requirements)
        except IdTokenValidationError as exc:
            logger.debug("ID token rejected (%s): %s", exc.code, exc)
            raise

    def evaluate(self, token: str, requirements: TokenRequirements) -> ValidationOutcome:
        """
        Same as ``validate`` but returns a ValidationOutcome instead of raising
        validation errors.
        """
        try:
            return ValidationOutcome.success(self.validate(token, requirements))
        except IdTokenValidationError as exc:
            return ValidationOutcome.failure(exc)

    # ------------------------------------------------------------------ #

    def _validate(self, token: str, requirements: TokenRequirements) -> Dict[str, Any]:
        compact = decode_compact(token)

        algorithm = SigningAlgorithm.from_header(compact.algorithm)
        if requirements.algorithm is not None and algorithm is not requirements.algorithm:
            raise UnexpectedAlgorithmError(requirements.algorithm.value, algorithm.value)

        key = self.key_resolver.resolve(compact, algorithm)
        self.signature_verifier.verify(compact, key, algorithm)
        self.claims_validator.validate(compact.payload, requirements, self.clock.now())

        return dict(compact.payload)
