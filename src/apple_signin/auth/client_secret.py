"""Client secret generation.

Apple does not issue a static client secret. Every call to the token
endpoint must carry a JWT signed with the developer's ES256 private key:

    header: {"alg": "ES256", "kid": <key_id>}
    claims: {"aud": "https://appleid.apple.com", "iat": now,
             "exp": now + MAX_TOKEN_DURATION, "iss": <team_id>,
             "sub": <client_id>}

A secret is minted per token exchange, used once, and dropped.
"""

from datetime import datetime, timezone
from typing import Any

import jwt as pyjwt

from apple_signin.auth.config import AppleSignInConfig
from apple_signin.auth.constants import BASE_DOMAIN, KEY_SIGN_ALGORITHM, MAX_TOKEN_DURATION


class ClientSecretGenerator:
    """Signs short-lived client secrets for the token endpoint.

    The algorithm is fixed to ES256; it is not taken from configuration.

    Example:
        >>> generator = ClientSecretGenerator(config)
        >>> secret = await generator.generate()
        >>> pyjwt.get_unverified_header(secret)["kid"] == config.key_id
        True
    """

    def __init__(self, config: AppleSignInConfig):
        """Initialize generator.

        Args:
            config: Strategy config providing client_id, team_id, key_id and private_key
        """
        self._client_id = config.client_id
        self._team_id = config.team_id
        self._key_id = config.key_id
        self._private_key = config.private_key

    def build_claims(self, now: datetime | None = None) -> dict[str, Any]:
        """Build the client secret claim set.

        Args:
            now: Issue time (defaults to current UTC time)

        Returns:
            Claims with exp - iat == MAX_TOKEN_DURATION
        """
        issued_at = int((now or datetime.now(timezone.utc)).timestamp())
        return {
            "aud": BASE_DOMAIN,
            "iat": issued_at,
            "exp": issued_at + MAX_TOKEN_DURATION,
            "iss": self._team_id,
            "sub": self._client_id,
        }

    async def generate(self) -> str:
        """Sign a fresh client secret.

        Returns:
            Encoded JWT

        Raises:
            Whatever PyJWT/cryptography raise for unusable key material
            (e.g. ValueError, jwt.InvalidKeyError). Errors are not retried.
        """
        return pyjwt.encode(
            self.build_claims(),
            self._private_key,
            algorithm=KEY_SIGN_ALGORITHM,
            headers={"kid": self._key_id},
        )
