import base64
from datetime import datetime, timedelta, timezone

import pytest
import requests
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from jwt.algorithms import ECAlgorithm

from pkg_idtoken.adapters.jwks.fetcher import RequestsKeySetFetcher, jwks_uri_for, parse_key_set
from pkg_idtoken.domain.exceptions import KeyRetrievalError

from conftest import ISSUER, NOW, public_jwk


class FakeResponse:
    def __init__(self, status_code=200, body=None, invalid_json=False):
        self.status_code = status_code
        self._body = body
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise requests.JSONDecodeError("Expecting value", "<html>", 0)
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


def _self_signed_cert_der(private_key) -> bytes:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "tenant.example.com")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime(2025, 1, 1, tzinfo=timezone.utc))
        .not_valid_after(datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(days=3650))
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


def test_jwks_uri_for():
    assert jwks_uri_for("https://tenant.example.com/") == "https://tenant.example.com/.well-known/jwks.json"
    assert jwks_uri_for("https://tenant.example.com") == "https://tenant.example.com/.well-known/jwks.json"
    assert (
        jwks_uri_for("https://kc.example.com/realms/r1", "/protocol/openid-connect/certs")
        == "https://kc.example.com/realms/r1/protocol/openid-connect/certs"
    )


def test_parse_key_set_reads_rsa_signing_keys(rsa_key, other_rsa_key):
    ec_key = ec.generate_private_key(ec.SECP256R1())
    ec_jwk = ECAlgorithm.to_jwk(ec_key.public_key(), as_dict=True)
    ec_jwk["kid"] = "ec-1"
    enc_jwk = public_jwk(other_rsa_key, "enc-1")
    enc_jwk["use"] = "enc"

    document = {
        "keys": [
            public_jwk(rsa_key, "key-1"),
            ec_jwk,
            enc_jwk,
            "garbage",
            {"kty": "RSA", "kid": "broken", "n": "!!", "e": "AQAB"},
        ]
    }
    key_set = parse_key_set(ISSUER, document, NOW)

    assert key_set.authority == ISSUER
    assert key_set.fetched_at == NOW
    assert [k.key_id for k in key_set.keys] == ["key-1"]
    assert key_set.keys[0].public_key.public_numbers() == rsa_key.public_key().public_numbers()


def test_parse_key_set_falls_back_to_x5c(rsa_key):
    der = _self_signed_cert_der(rsa_key)
    document = {"keys": [{"kty": "RSA", "kid": "cert-1", "use": "sig", "x5c": [base64.b64encode(der).decode()]}]}

    key_set = parse_key_set(ISSUER, document, NOW)
    assert key_set.select("cert-1").public_key.public_numbers() == rsa_key.public_key().public_numbers()


@pytest.mark.parametrize(
    "document",
    [
        None,
        [],
        {"keys": "nope"},
        {"keys": []},
        {"keys": [{"kty": "oct", "k": "c2VjcmV0"}]},
        {"keys": [{"kty": "RSA", "kid": "x", "x5c": ["not base64 !!"]}]},
    ],
)
def test_parse_key_set_rejects_unusable_documents(document):
    with pytest.raises(KeyRetrievalError):
        parse_key_set(ISSUER, document, NOW)


def test_fetch_success(rsa_key):
    session = FakeSession(FakeResponse(body={"keys": [public_jwk(rsa_key, "key-1")]}))
    fetcher = RequestsKeySetFetcher(session=session, timeout=3.0, verify_ssl=False)

    key_set = fetcher.fetch(ISSUER, NOW)

    assert key_set.select("key-1") is not None
    url, kwargs = session.requests[0]
    assert url == "https://tenant.example.com/.well-known/jwks.json"
    assert kwargs["timeout"] == 3.0
    assert kwargs["verify"] is False


def test_fetch_uses_explicit_uri(rsa_key):
    session = FakeSession(FakeResponse(body={"keys": [public_jwk(rsa_key, "key-1")]}))
    fetcher = RequestsKeySetFetcher(
        session=session, jwks_uris={ISSUER: "https://keys.example.com/certs"}
    )
    fetcher.fetch(ISSUER, NOW)
    assert session.requests[0][0] == "https://keys.example.com/certs"
    assert fetcher.uri_for("https://elsewhere.example/") == "https://elsewhere.example/.well-known/jwks.json"


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(FakeResponse(status_code=500, body={})),
        FakeSession(FakeResponse(status_code=404, body={})),
        FakeSession(FakeResponse(status_code=304, body={})),
        FakeSession(FakeResponse(invalid_json=True)),
        FakeSession(FakeResponse(body={"error": "nope"})),
        FakeSession(error=requests.ConnectionError("connection refused")),
        FakeSession(error=requests.Timeout("read timed out")),
    ],
)
def test_fetch_failures_become_key_retrieval_errors(session):
    with pytest.raises(KeyRetrievalError):
        RequestsKeySetFetcher(session=session).fetch(ISSUER, NOW)


def test_close_closes_session():
    session = FakeSession()
    RequestsKeySetFetcher(session=session).close()
    assert session.closed
