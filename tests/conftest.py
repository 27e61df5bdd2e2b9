"""Shared fixtures: throwaway keys, signed identity tokens, fake collaborators."""

import json
import time
from typing import Any

import jwt as pyjwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt.algorithms import RSAAlgorithm

from apple_signin.auth.constants import BASE_DOMAIN
from apple_signin.auth.errors import SigningKeyNotFoundError

CLIENT_ID = "com.example.web"
TEAM_ID = "TEAM123456"
KEY_ID = "CLIENTKEY1"
APPLE_KID = "apple-key-1"
CALLBACK_URL = "https://example.com/auth/apple/callback"


def _pem_private(key) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def ec_private_key():
    """Developer's ES256 signing key (stands in for the .p8 file)."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_private_pem(ec_private_key) -> str:
    return _pem_private(ec_private_key)


@pytest.fixture(scope="session")
def rsa_private_key():
    """Apple's identity token signing key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key():
    """A key Apple never published."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def apple_jwk(rsa_private_key) -> dict[str, Any]:
    """Apple-style public JWK for rsa_private_key."""
    jwk = json.loads(RSAAlgorithm.to_jwk(rsa_private_key.public_key()))
    jwk.update({"kid": APPLE_KID, "alg": "RS256", "use": "sig"})
    return jwk


@pytest.fixture
def config(ec_private_pem) -> dict[str, Any]:
    """Valid strategy options."""
    return {
        "client_id": CLIENT_ID,
        "team_id": TEAM_ID,
        "key_id": KEY_ID,
        "private_key": ec_private_pem,
        "callback_url": CALLBACK_URL,
    }


@pytest.fixture
def make_id_token(rsa_private_key):
    """Factory for identity tokens signed like Apple's.

    Claim and header overrides replace defaults; a value of None removes it.
    """

    def _make(key=None, algorithm: str = "RS256", headers: dict | None = None, **overrides) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": BASE_DOMAIN,
            "aud": CLIENT_ID,
            "sub": "u1",
            "email": "a@b.com",
            "iat": now,
            "exp": now + 600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}

        header = {"kid": APPLE_KID}
        header.update(headers or {})
        header = {k: v for k, v in header.items() if v is not None}

        return pyjwt.encode(claims, key or rsa_private_key, algorithm=algorithm, headers=header)

    return _make


class StaticKeyStore:
    """In-memory key store that records lookups."""

    def __init__(self, keys: dict[str, pyjwt.PyJWK] | None = None, error: Exception | None = None):
        self.keys = keys or {}
        self.error = error
        self.lookups: list[str] = []

    async def get_signing_key(self, kid: str) -> pyjwt.PyJWK:
        self.lookups.append(kid)
        if self.error is not None:
            raise self.error
        if kid not in self.keys:
            raise SigningKeyNotFoundError(kid)
        return self.keys[kid]


@pytest.fixture
def key_store(apple_jwk) -> StaticKeyStore:
    return StaticKeyStore({APPLE_KID: pyjwt.PyJWK(apple_jwk)})


class FakeExchange:
    """TokenExchange double that records calls."""

    def __init__(self, token_response: dict[str, Any] | None = None, error: Exception | None = None):
        self.token_response = token_response or {}
        self.error = error
        self.exchanges: list[dict[str, Any]] = []
        self.authorizations: list[dict[str, Any]] = []

    def authorization_url(self, redirect_uri, scope, **params):
        self.authorizations.append({"redirect_uri": redirect_uri, "scope": scope, **params})
        return "https://appleid.apple.com/auth/authorize?client_id=" + CLIENT_ID, params.get("state") or "state-1"

    async def exchange_code(self, code, *, client_secret, redirect_uri=None):
        self.exchanges.append(
            {"code": code, "client_secret": client_secret, "redirect_uri": redirect_uri}
        )
        if self.error is not None:
            raise self.error
        return dict(self.token_response)


@pytest.fixture
def fake_exchange(make_id_token) -> FakeExchange:
    return FakeExchange(
        {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "token_type": "Bearer",
            "expires_in": 3600,
            "id_token": make_id_token(),
        }
    )


@pytest.fixture
def make_key_store():
    return StaticKeyStore


@pytest.fixture
def make_exchange():
    return FakeExchange
