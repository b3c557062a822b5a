from datetime import timedelta
from enum import Enum

from .exceptions import UnsupportedAlgorithmError


DEFAULT_LEEWAY = timedelta(seconds=60)
DEFAULT_MIN_REFRESH_INTERVAL = timedelta(seconds=30)
DEFAULT_KEY_SET_TTL = timedelta(minutes=10)
DEFAULT_JWKS_PATH = ".well-known/jwks.json"

ORGANIZATION_ID_PREFIX = "org_"


class SigningAlgorithm(Enum):
    HS256 = "HS256"
    RS256 = "RS256"

    @classmethod
    def from_header(cls, name: object) -> "SigningAlgorithm":
        """
        Case-sensitive lookup against the allow-list.

        Anything else (``none``, ``HS512``, ``hs256``...) is refused.
        """
        for member in cls:
            if member.value == name:
                return member
        raise UnsupportedAlgorithmError(name)

    @property
    def is_symmetric(self) -> bool:
        return self is SigningAlgorithm.HS256


class SecretEncoding(Enum):
    UTF8 = "utf8"
    BASE64URL = "base64url"
