from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ...domain.exceptions import (
    AuthTimeExceededError,
    InvalidAudienceError,
    InvalidAuthorizedPartyError,
    InvalidIssuedAtError,
    InvalidIssuerError,
    NonceMismatchError,
    OrganizationMismatchError,
    TokenExpiredError,
    TokenNotYetValidError,
)
from ...domain.value_objects import TokenRequirements


def _is_number(value: Any) -> bool:
    # NaN and infinities compare false either way; ints past float range overflow
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


@dataclass(slots=True)
class ClaimsValidator:
    """
    Enforces OIDC ID token claim rules against TokenRequirements.

    Checks run in a fixed order and the first failure is raised:
    iss, aud, azp, exp, iat, nbf, nonce, auth_time, organization.
    """

    def validate(
            self,
            claims: Mapping[str, Any],
            requirements: TokenRequirements,
            now: datetime,
    ) -> None:
        timestamp = now.timestamp()
        leeway = requirements.leeway.total_seconds()

        self._check_issuer(claims, requirements)
        self._check_audience(claims, requirements)
        self._check_expiry(claims, timestamp, leeway)
        self._check_issued_at(claims)
        self._check_not_before(claims, timestamp, leeway)
        self._check_nonce(claims, requirements)
        self._check_auth_time(claims, requirements, timestamp, leeway)
        self._check_organization(claims, requirements)

    # ------------------------------------------------------------------ #
    # individual checks
    # ------------------------------------------------------------------ #

    @staticmethod
    def _check_issuer(claims: Mapping[str, Any], requirements: TokenRequirements) -> None:
        iss = claims.get("iss")
        if not isinstance(iss, str) or not iss:
            raise InvalidIssuerError("Issuer (iss) claim must be a string present in the ID token")
        if iss != requirements.issuer:
            raise InvalidIssuerError(
                f"Issuer (iss) claim mismatch in the ID token; expected "
                f"{requirements.issuer!r}, found {iss!r}"
            )

    @staticmethod
    def _check_audience(claims: Mapping[str, Any], requirements: TokenRequirements) -> None:
        aud = claims.get("aud")
        expected = requirements.audience

        if isinstance(aud, str):
            if aud != expected:
                raise InvalidAudienceError(
                    f"Audience (aud) claim mismatch in the ID token; expected "
                    f"{expected!r} but found {aud!r}"
                )
            return

        if not isinstance(aud, list) or not aud:
            raise InvalidAudienceError(
                "Audience (aud) claim must be a string or array of strings present in the ID token"
            )
        if expected not in aud:
            raise InvalidAudienceError(
                f"Audience (aud) claim mismatch in the ID token; expected "
                f"{expected!r} but was not one of {aud!r}"
            )

        # several audiences: the party the token was issued to must be named
        if len(aud) > 1:
            azp = claims.get("azp")
            if not isinstance(azp, str) or not azp:
                raise InvalidAuthorizedPartyError(
                    "Authorized Party (azp) claim must be a string present in the "
                    "ID token when Audience (aud) claim has multiple values"
                )
            if azp != expected:
                raise InvalidAuthorizedPartyError(
                    f"Authorized Party (azp) claim mismatch in the ID token; "
                    f"expected {expected!r}, found {azp!r}"
                )

    @staticmethod
    def _check_expiry(claims: Mapping[str, Any], now: float, leeway: float) -> None:
        exp = claims.get("exp")
        if not _is_number(exp):
            raise TokenExpiredError(
                "Expiration Time (exp) claim must be a number present in the ID token"
            )
        if now > exp + leeway:
            raise TokenExpiredError(
                f"Expiration Time (exp) claim error in the ID token; current time "
                f"({now:.0f}) is after expiration time ({exp})"
            )

    @staticmethod
    def _check_issued_at(claims: Mapping[str, Any]) -> None:
        if not _is_number(claims.get("iat")):
            raise InvalidIssuedAtError(
                "Issued At (iat) claim must be a number present in the ID token"
            )

    @staticmethod
    def _check_not_before(claims: Mapping[str, Any], now: float, leeway: float) -> None:
        if "nbf" not in claims:
            return
        nbf = claims["nbf"]
        if not _is_number(nbf):
            raise TokenNotYetValidError("Not Before (nbf) claim must be a number")
        if now < nbf - leeway:
            raise TokenNotYetValidError(
                f"Not Before (nbf) claim error in the ID token; current time "
                f"({now:.0f}) is before {nbf}"
            )

    @staticmethod
    def _check_nonce(claims: Mapping[str, Any], requirements: TokenRequirements) -> None:
        if requirements.nonce is None:
            return
        nonce = claims.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            raise NonceMismatchError("Nonce (nonce) claim must be a string present in the ID token")
        if nonce != requirements.nonce:
            raise NonceMismatchError(
                f"Nonce (nonce) claim mismatch in the ID token; expected "
                f"{requirements.nonce!r}, found {nonce!r}"
            )

    @staticmethod
    def _check_auth_time(
            claims: Mapping[str, Any],
            requirements: TokenRequirements,
            now: float,
            leeway: float,
    ) -> None:
        if requirements.max_age is None:
            return
        auth_time = claims.get("auth_time")
        if not _is_number(auth_time):
            raise AuthTimeExceededError(
                "Authentication Time (auth_time) claim must be a number present "
                "in the ID token when Max Age (max_age) is specified"
            )
        latest = auth_time + requirements.max_age.total_seconds() + leeway
        if now > latest:
            raise AuthTimeExceededError(
                f"Authentication Time (auth_time) claim in the ID token indicates "
                f"that too much time has passed since the last end-user "
                f"authentication; current time ({now:.0f}) is after last auth "
                f"time ({latest:.0f})"
            )

    @staticmethod
    def _check_organization(claims: Mapping[str, Any], requirements: TokenRequirements) -> None:
        expected = requirements.organization
        if expected is None:
            return

        if requirements.organization_is_id:
            org_id = claims.get("org_id")
            if not isinstance(org_id, str) or not org_id:
                raise OrganizationMismatchError(
                    "Organization (org_id) claim must be a string present in the ID token"
                )
            if org_id != expected:
                raise OrganizationMismatchError(
                    f"Organization (org_id) claim mismatch in the ID token; "
                    f"expected {expected!r}, found {org_id!r}"
                )
            return

        org_name = claims.get("org_name")
        if not isinstance(org_name, str) or not org_name:
            raise OrganizationMismatchError(
                "Organization (org_name) claim must be a string present in the ID token"
            )
        if org_name.lower() != expected.lower():
            raise OrganizationMismatchError(
                f"Organization (org_name) claim mismatch in the ID token; "
                f"expected {expected!r}, found {org_name!r}"
            )
