"""Sign in with Apple authentication strategy.

Bridges a generic three-legged OAuth2 exchange to Apple's deviations:

- The redirect may arrive as a form POST (`response_mode=form_post`), so
  body fields are merged into the query parameters.
- `error=user_cancelled_authorize` means the user pressed "Cancel" and ends
  the attempt as a normal failed login.
- The client secret is a JWT minted for every token exchange and passed to
  that single exchange call.
- The user's identity is the `id_token` in the token response, validated
  against Apple's rotating public keys.

Two flow kinds share one authenticate() core:

- FlowKind.REDIRECT ("apple"): browser redirect flow
- FlowKind.TOKEN ("apple-token"): native apps POST the code they obtained
  themselves; the request must be a POST with a body carrying `code`

Usage:
    strategy = AppleSignInStrategy(
        {"client_id": ..., "key_id": ..., "private_key": ..., "team_id": ...,
         "callback_url": "https://example.com/auth/apple/callback",
         "scope": "name email"},
        verify=lambda access_token, refresh_token, profile, done: done(None, profile),
    )
    result = await strategy.authenticate(await AuthRequest.from_starlette(request))
"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

from loguru import logger

from apple_signin.auth.client_secret import ClientSecretGenerator
from apple_signin.auth.config import AppleSignInConfig, load_config, normalize_scope
from apple_signin.auth.constants import (
    RESPONSE_MODE_FORM_POST,
    RESPONSE_MODE_QUERY,
    USER_CANCELLED_ERROR,
)
from apple_signin.auth.errors import AuthorizationError, IdentityTokenError, KeyStoreError
from apple_signin.auth.exchange import AuthlibTokenExchange, TokenExchange
from apple_signin.auth.identity_token import IdentityTokenValidator
from apple_signin.auth.key_store import JWKSKeyStore, SigningKeyStore
from apple_signin.auth.profile import build_identity_record
from apple_signin.auth.request import AuthRequest
from apple_signin.auth.result import AuthResult
from apple_signin.auth.verify import Done, normalize_verify


class FlowKind(str, Enum):
    """Authentication flow variants (value is the strategy name)."""

    REDIRECT = "apple"
    TOKEN = "apple-token"


def _check_redirect_request(request: AuthRequest) -> AuthResult | None:
    return None


def _check_token_request(request: AuthRequest) -> AuthResult | None:
    if request.method.upper() != "POST" or not request.body:
        return AuthResult.fail("POST request with body required", status=400)
    if not request.body.get("code"):
        return AuthResult.fail("`code` is required", status=400)
    return None


_PRECHECKS: dict[FlowKind, Callable[[AuthRequest], AuthResult | None]] = {
    FlowKind.REDIRECT: _check_redirect_request,
    FlowKind.TOKEN: _check_token_request,
}


class AppleSignInStrategy:
    """Authentication strategy for Sign in with Apple."""

    def __init__(
        self,
        options: AppleSignInConfig | Mapping[str, Any],
        verify: Callable[..., Any] | None = None,
        *,
        flow: FlowKind = FlowKind.REDIRECT,
        exchange: TokenExchange | None = None,
        key_store: SigningKeyStore | None = None,
        jwks_cache_ttl: int = 3600,
        http_timeout: float = 10.0,
    ):
        """Initialize strategy.

        Args:
            options: Strategy config (or mapping of its fields)
            verify: Optional verify callback, arity 4-6 (see apple_signin.auth.verify)
            flow: REDIRECT for the browser flow, TOKEN for native app code submission
            exchange: OAuth2 exchange (defaults to Authlib against Apple's endpoints)
            key_store: Public key store (defaults to Apple's JWKS endpoint)
            jwks_cache_ttl: Key set cache TTL for the default key store
            http_timeout: HTTP timeout for the default exchange and key store

        Raises:
            ConfigurationError: Missing required option or unsupported verify callback
        """
        self.config = load_config(options)
        self.flow = flow
        self.verify_shape, self._verify = normalize_verify(verify, self.config.pass_req_to_callback)
        self._precheck = _PRECHECKS[flow]

        self.client_secret = ClientSecretGenerator(self.config)
        self.key_store = key_store or JWKSKeyStore(
            self.config.keys_url, cache_ttl=jwks_cache_ttl, timeout=http_timeout
        )
        self.validator = IdentityTokenValidator(self.config.client_id, self.key_store)
        self.exchange = exchange or AuthlibTokenExchange(
            client_id=self.config.client_id,
            authorization_url=self.config.authorization_url,
            token_url=self.config.token_url,
            timeout=http_timeout,
        )
        logger.info(
            f"Initialized {self.name} strategy (client_id={self.config.client_id}, "
            f"verify={self.verify_shape.value})"
        )

    @property
    def name(self) -> str:
        return self.flow.value

    def authorization_params(self, options: Mapping[str, Any] | None = None) -> dict[str, str]:
        """Extra authorization request parameters.

        Apple requires `response_mode=form_post` whenever a scope is requested,
        because name and email can only be delivered in a signed form body.

        Args:
            options: Per-call options (may carry `scope`)
        """
        options = options or {}
        if normalize_scope(options.get("scope")) or self.config.scopes:
            return {"response_mode": RESPONSE_MODE_FORM_POST}
        return {"response_mode": RESPONSE_MODE_QUERY}

    async def authenticate(self, request: AuthRequest, **options: Any) -> AuthResult:
        """Authenticate one inbound request.

        Args:
            request: Inbound request
            **options: Per-call overrides: scope, callback_url, state

        Returns:
            AuthResult. Never raises for per-request conditions.
        """
        rejected = self._precheck(request)
        if rejected is not None:
            logger.warning(f"{self.name}: {rejected.message}")
            return rejected

        # Apple may post the redirect payload instead of using the query string
        request.query = request.params
        params = request.query

        error = params.get("error")
        if error == USER_CANCELLED_ERROR:
            logger.info("User cancelled Sign in with Apple")
            return AuthResult.fail({"message": "User cancelled authorization"})
        if error:
            description = params.get("error_description")
            if error == "access_denied":
                return AuthResult.fail({"message": description or error})
            return AuthResult.failure(
                AuthorizationError(description, error, params.get("error_uri"))
            )

        callback_url = options.get("callback_url") or self.config.callback_url

        code = params.get("code")
        if not code:
            scope = normalize_scope(options.get("scope")) or self.config.scopes
            url, state = self.exchange.authorization_url(
                callback_url,
                scope,
                state=options.get("state"),
                **self.authorization_params(options),
            )
            return AuthResult.redirect(url, state)

        try:
            client_secret = await self.client_secret.generate()
        except Exception as e:
            logger.error(f"Failed to generate client secret: {type(e).__name__}")
            return AuthResult.failure(e)

        try:
            token_response = await self.exchange.exchange_code(
                code, client_secret=client_secret, redirect_uri=callback_url
            )
        except Exception as e:
            return AuthResult.failure(e)

        return await self._verify_identity(
            request,
            token_response.get("access_token"),
            token_response.get("refresh_token"),
            token_response,
        )

    async def _verify_identity(
        self,
        request: AuthRequest,
        access_token: str | None,
        refresh_token: str | None,
        params: dict[str, Any],
    ) -> AuthResult:
        """Validate the id_token, build the identity record, run the verify callback."""
        try:
            claims = await self.validator.validate(params.get("id_token"))
        except IdentityTokenError as e:
            message = f"response `id_token` is invalid: {e}"
            logger.warning(message)
            return AuthResult.fail({"message": message})
        except KeyStoreError as e:
            return AuthResult.failure(e)

        profile = build_identity_record(request, claims)
        done = Done()
        try:
            await self._verify(request, access_token, refresh_token, params, profile, done)
        except Exception as e:
            logger.error(f"Verify callback raised {type(e).__name__}: {e}")
            return AuthResult.failure(e)
        return done.to_result()
