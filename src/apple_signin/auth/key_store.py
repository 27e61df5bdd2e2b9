"""Apple public key store.

Fetches Apple's JSON Web Key Set and resolves verification keys by key id.
Apple rotates these keys, so an unknown kid triggers one forced refresh
before the lookup fails.
"""

import asyncio
import time
from typing import Any, Protocol

import httpx
import jwt as pyjwt
from loguru import logger

from apple_signin.auth.constants import PUBLIC_KEYS_URL
from apple_signin.auth.errors import KeyStoreError, SigningKeyNotFoundError


class SigningKeyStore(Protocol):
    """Anything that can resolve a verification key by key id."""

    async def get_signing_key(self, kid: str) -> pyjwt.PyJWK:
        """Return the public key for kid.

        Raises:
            SigningKeyNotFoundError: No key with that id
            KeyStoreError: Key set unavailable
        """
        ...


class JWKSKeyStore:
    """JWKS-backed key store with TTL caching.

    The only state shared across requests is the cached key set; refreshes
    are serialized with an asyncio.Lock.
    """

    def __init__(
        self,
        jwks_url: str = PUBLIC_KEYS_URL,
        cache_ttl: int = 3600,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize key store.

        Args:
            jwks_url: Key set endpoint
            cache_ttl: Seconds a fetched key set stays fresh
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self._transport = transport
        self._jwks: pyjwt.PyJWKSet | None = None
        self._jwks_cache_time: float = 0
        self._lock = asyncio.Lock()

    async def _fetch_jwks(self) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.jwks_url)
            response.raise_for_status()
            return response.json()

    async def _get_jwks(self, force_refresh: bool = False) -> pyjwt.PyJWKSet:
        """Return the cached key set, refreshing it when stale.

        Args:
            force_refresh: Ignore the cache

        Raises:
            KeyStoreError: Endpoint unavailable or document unusable
        """
        async with self._lock:
            now = time.time()
            if (
                not force_refresh
                and self._jwks is not None
                and (now - self._jwks_cache_time) < self.cache_ttl
            ):
                return self._jwks

            try:
                data = await self._fetch_jwks()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch Apple public keys from {self.jwks_url}: {e}")
                raise KeyStoreError(f"Failed to fetch Apple public keys: {e}") from e

            try:
                self._jwks = pyjwt.PyJWKSet.from_dict(data)
            except pyjwt.PyJWKSetError as e:
                raise KeyStoreError(f"Apple public key set is unusable: {e}") from e

            self._jwks_cache_time = now
            logger.info(f"Refreshed Apple public keys ({len(self._jwks.keys)} keys)")
            return self._jwks

    @staticmethod
    def _find(jwks: pyjwt.PyJWKSet, kid: str) -> pyjwt.PyJWK | None:
        for key in jwks.keys:
            if key.key_id == kid:
                return key
        return None

    async def get_signing_key(self, kid: str) -> pyjwt.PyJWK:
        """Resolve a verification key.

        Args:
            kid: Key id from the token header

        Returns:
            Matching PyJWK

        Raises:
            SigningKeyNotFoundError: kid absent even after a refresh
            KeyStoreError: Key set unavailable
        """
        key = self._find(await self._get_jwks(), kid)
        if key is not None:
            return key

        logger.info(f"Unknown key id {kid}, refreshing Apple public keys")
        key = self._find(await self._get_jwks(force_refresh=True), kid)
        if key is None:
            raise SigningKeyNotFoundError(kid)
        return key

    def clear_cache(self) -> None:
        """Drop the cached key set."""
        self._jwks = None
        self._jwks_cache_time = 0
