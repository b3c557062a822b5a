from __future__ import annotations

from jwt.algorithms import HMACAlgorithm, RSAAlgorithm

from ...domain.constants import SigningAlgorithm
from ...domain.entities import AsymmetricKey, CompactToken, SymmetricKey, VerificationKey
from ...domain.exceptions import SignatureInvalidError


class SignatureVerifier:
    """
    Checks a token's signature with PyJWT's algorithm primitives.

    HS256 goes through ``HMACAlgorithm.verify`` (``hmac.compare_digest``),
    RS256 through ``RSAAlgorithm.verify`` (PKCS#1 v1.5 with SHA-256).
    Only pass/fail comes out of here; claims are not looked at.
    """

    def __init__(self) -> None:
        self._hmac = HMACAlgorithm(HMACAlgorithm.SHA256)
        self._rsa = RSAAlgorithm(RSAAlgorithm.SHA256)

    def verify(
            self,
            token: CompactToken,
            key: VerificationKey,
            algorithm: SigningAlgorithm,
    ) -> None:
        """
        Raises:
            SignatureInvalidError
        """
        if algorithm is SigningAlgorithm.HS256:
            valid = self._verify_hmac(token, key)
        elif algorithm is SigningAlgorithm.RS256:
            valid = self._verify_rsa(token, key)
        else:  # pragma: no cover - SigningAlgorithm is closed
            raise SignatureInvalidError(f"No verifier for {algorithm.value}")

        if not valid:
            raise SignatureInvalidError(
                f"Invalid {algorithm.value} signature"
                + (f" for kid {key.key_id!r}" if isinstance(key, AsymmetricKey) and key.key_id else "")
            )

    def _verify_hmac(self, token: CompactToken, key: VerificationKey) -> bool:
        if not isinstance(key, SymmetricKey) or not key.secret:
            return False
        return self._hmac.verify(token.signing_input, key.secret, token.signature)

    def _verify_rsa(self, token: CompactToken, key: VerificationKey) -> bool:
        if not isinstance(key, AsymmetricKey):
            return False
        try:
            return self._rsa.verify(token.signing_input, key.public_key, token.signature)
        except (TypeError, ValueError, AttributeError):
            # key material that is not an RSA public key
            return False
