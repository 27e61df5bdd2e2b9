"""Identity token validation.

Apple returns the user's identity as an RS256-signed JWT (`id_token`).
Validation runs as a linear pipeline and stops at the first failure:

1. Decode header and payload without verifying (malformed -> "invalid token")
2. Pin the algorithm to RS256 regardless of what the header claims
3. Require a key id
4. Resolve the public key from the key store
5. Verify signature, audience, issuer, expiry and maximum age

Steps 1-3 fail fast without touching the network.
"""

import time
from typing import Any

import jwt as pyjwt
from loguru import logger

from apple_signin.auth.constants import BASE_DOMAIN, KEY_VERIFY_ALGORITHM, MAX_TOKEN_DURATION
from apple_signin.auth.errors import IdentityTokenError
from apple_signin.auth.key_store import SigningKeyStore


class IdentityTokenValidator:
    """Validates Apple identity tokens for one client id."""

    def __init__(
        self,
        client_id: str,
        key_store: SigningKeyStore,
        max_age: int = MAX_TOKEN_DURATION,
        issuer: str = BASE_DOMAIN,
    ):
        """Initialize validator.

        Args:
            client_id: Expected audience
            key_store: Source of Apple's public keys
            max_age: Maximum seconds since the token's iat
            issuer: Expected issuer
        """
        self.client_id = client_id
        self.key_store = key_store
        self.max_age = max_age
        self.issuer = issuer

    @staticmethod
    def decode_unverified(token: str | None) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split a token into header and payload without checking the signature.

        Raises:
            IdentityTokenError: Token is missing or malformed
        """
        if not token or not isinstance(token, str):
            raise IdentityTokenError("invalid token")
        try:
            header = pyjwt.get_unverified_header(token)
            payload = pyjwt.decode(token, options={"verify_signature": False})
        except pyjwt.PyJWTError as e:
            raise IdentityTokenError("invalid token") from e
        return header, payload

    async def validate(self, token: str | None) -> dict[str, Any]:
        """Validate an identity token.

        Args:
            token: Encoded id_token

        Returns:
            Verified claims

        Raises:
            IdentityTokenError: Token rejected (includes unknown key id)
            KeyStoreError: Apple's key set could not be fetched
        """
        header, _ = self.decode_unverified(token)

        alg = header.get("alg")
        if alg != KEY_VERIFY_ALGORITHM:
            raise IdentityTokenError(f"jwt algorithm cannot be verified: {alg}")

        kid = header.get("kid")
        if not kid:
            raise IdentityTokenError("jwt header does not have a key id")

        signing_key = await self.key_store.get_signing_key(kid)

        try:
            claims = pyjwt.decode(
                token,
                key=signing_key.key,
                algorithms=[KEY_VERIFY_ALGORITHM],
                audience=self.client_id,
                issuer=self.issuer,
                options={"require": ["aud", "exp", "iat", "iss", "sub"]},
            )
        except pyjwt.PyJWTError as e:
            raise IdentityTokenError(str(e)) from e

        if time.time() - claims["iat"] > self.max_age:
            raise IdentityTokenError("maxAge exceeded")

        logger.debug(f"Identity token validated for subject {claims['sub']}")
        return claims
