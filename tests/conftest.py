# tests/conftest.py
import threading
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from pkg_idtoken.adapters.jwks.fetcher import parse_key_set
from pkg_idtoken.domain.exceptions import KeyRetrievalError

ISSUER = "https://tenant.example.com/"
AUDIENCE = "client-abc"
SECRET = "s3cr3t-client-secret-with-enough-length"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
NOW_TS = int(NOW.timestamp())


class FixedClock:
    def __init__(self, current: datetime = NOW) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


class StubFetcher:
    """
    Key-set transport double: counts fetches, can block, fail or rotate keys.
    """

    def __init__(self, documents=None) -> None:
        self.documents = dict(documents or {})
        self.calls = 0
        self.error = None
        self.entered = threading.Event()
        self.gate = None  # threading.Event the fetch waits on, if set
        self._lock = threading.Lock()

    def fetch(self, authority, fetched_at):
        with self._lock:
            self.calls += 1
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        if authority not in self.documents:
            raise KeyRetrievalError(f"no key set for {authority}")
        return parse_key_set(authority, self.documents[authority], fetched_at)


def public_jwk(private_key, kid):
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return jwk


def make_claims(**overrides):
    claims = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": "auth0|user-1",
        "exp": NOW_TS + 60,
        "iat": NOW_TS,
    }
    claims.update(overrides)
    return {k: v for k, v in claims.items() if v is not None}


def hs256_token(claims, secret=SECRET, headers=None):
    return jwt.encode(claims, secret, algorithm="HS256", headers=headers)


def rs256_token(claims, private_key, kid="key-1"):
    headers = {"kid": kid} if kid is not None else None
    return jwt.encode(claims, private_key, algorithm="RS256", headers=headers)


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fetcher(rsa_key):
    return StubFetcher({ISSUER: {"keys": [public_jwk(rsa_key, "key-1")]}})
