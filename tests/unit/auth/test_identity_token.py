"""Test identity token validation."""

import json
import time

import jwt as pyjwt
import pytest
from jwt.algorithms import ECAlgorithm

from apple_signin.auth.constants import MAX_TOKEN_DURATION
from apple_signin.auth.errors import IdentityTokenError, KeyStoreError, SigningKeyNotFoundError
from apple_signin.auth.identity_token import IdentityTokenValidator


@pytest.fixture
def validator(key_store):
    return IdentityTokenValidator("com.example.web", key_store)


@pytest.mark.asyncio
async def test_validate_returns_claims(validator, make_id_token, key_store):
    claims = await validator.validate(make_id_token())

    assert claims["sub"] == "u1"
    assert claims["email"] == "a@b.com"
    assert key_store.lookups == ["apple-key-1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
async def test_malformed_token(validator, key_store, token):
    """Structurally invalid input fails without a key lookup."""
    with pytest.raises(IdentityTokenError, match="invalid token"):
        await validator.validate(token)
    assert key_store.lookups == []


@pytest.mark.asyncio
async def test_rejects_unexpected_algorithm_even_with_valid_signature(
    make_id_token, make_key_store, ec_private_key
):
    """An ES256 token whose key is in the store is still refused: RS256 is pinned."""
    ec_jwk = json.loads(ECAlgorithm.to_jwk(ec_private_key.public_key()))
    ec_jwk.update({"kid": "apple-key-1", "alg": "ES256"})
    store = make_key_store({"apple-key-1": pyjwt.PyJWK(ec_jwk)})
    validator = IdentityTokenValidator("com.example.web", store)

    token = make_id_token(key=ec_private_key, algorithm="ES256")

    with pytest.raises(IdentityTokenError, match="jwt algorithm cannot be verified: ES256"):
        await validator.validate(token)
    assert store.lookups == []


@pytest.mark.asyncio
async def test_rejects_symmetric_algorithm(validator, make_id_token):
    token = make_id_token(key="shared-secret-of-32-bytes-or-more!!", algorithm="HS256")
    with pytest.raises(IdentityTokenError, match="HS256"):
        await validator.validate(token)


@pytest.mark.asyncio
async def test_rejects_missing_key_id(validator, make_id_token, key_store):
    token = make_id_token(headers={"kid": None})
    with pytest.raises(IdentityTokenError, match="does not have a key id"):
        await validator.validate(token)
    assert key_store.lookups == []


@pytest.mark.asyncio
async def test_rejects_unknown_key_id(validator, make_id_token):
    token = make_id_token(headers={"kid": "unknown-key"})
    with pytest.raises(SigningKeyNotFoundError):
        await validator.validate(token)


@pytest.mark.asyncio
async def test_key_store_failure_propagates(make_id_token, make_key_store):
    store = make_key_store(error=KeyStoreError("Failed to fetch Apple public keys"))
    validator = IdentityTokenValidator("com.example.web", store)

    with pytest.raises(KeyStoreError):
        await validator.validate(make_id_token())


@pytest.mark.asyncio
async def test_rejects_bad_signature(validator, make_id_token, other_rsa_private_key):
    token = make_id_token(key=other_rsa_private_key)
    with pytest.raises(IdentityTokenError):
        await validator.validate(token)


@pytest.mark.asyncio
async def test_rejects_wrong_audience(validator, make_id_token):
    with pytest.raises(IdentityTokenError):
        await validator.validate(make_id_token(aud="com.attacker.app"))


@pytest.mark.asyncio
async def test_rejects_wrong_issuer(validator, make_id_token):
    with pytest.raises(IdentityTokenError):
        await validator.validate(make_id_token(iss="https://evil.example.com"))


@pytest.mark.asyncio
async def test_rejects_expired_token(validator, make_id_token):
    now = int(time.time())
    with pytest.raises(IdentityTokenError):
        await validator.validate(make_id_token(iat=now - 7200, exp=now - 3600))


@pytest.mark.asyncio
async def test_rejects_token_older_than_max_age(validator, make_id_token):
    """Age is checked independently of exp."""
    now = int(time.time())
    token = make_id_token(iat=now - MAX_TOKEN_DURATION - 60, exp=now + 3600)
    with pytest.raises(IdentityTokenError, match="maxAge exceeded"):
        await validator.validate(token)


@pytest.mark.asyncio
async def test_rejects_token_without_iat(validator, make_id_token):
    with pytest.raises(IdentityTokenError):
        await validator.validate(make_id_token(iat=None))


@pytest.mark.asyncio
async def test_custom_max_age(key_store, make_id_token):
    validator = IdentityTokenValidator("com.example.web", key_store, max_age=60)
    now = int(time.time())
    with pytest.raises(IdentityTokenError, match="maxAge exceeded"):
        await validator.validate(make_id_token(iat=now - 120))
