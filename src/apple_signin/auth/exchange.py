"""OAuth2 authorization code exchange.

Authorization URL construction and the code-for-token call are delegated to
Authlib. The client secret is an explicit argument of every exchange: a new
AsyncOAuth2Client is created per call, so no secret is ever stored on an
object another request could observe.
"""

from typing import Any, Protocol

import httpx
from authlib.common.security import generate_token
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri
from loguru import logger

from apple_signin.auth.errors import TokenExchangeError


class TokenExchange(Protocol):
    """The generic three-legged OAuth2 capability the strategy consumes."""

    def authorization_url(
        self,
        redirect_uri: str | None,
        scope: list[str],
        **params: Any,
    ) -> tuple[str, str]:
        """Return (authorization URL, state)."""
        ...

    async def exchange_code(
        self,
        code: str,
        *,
        client_secret: str,
        redirect_uri: str | None = None,
    ) -> dict[str, Any]:
        """Exchange an authorization code; return the token response."""
        ...


class AuthlibTokenExchange:
    """TokenExchange backed by Authlib's httpx OAuth2 client.

    Apple expects client credentials in the form body (client_secret_post).
    """

    def __init__(
        self,
        client_id: str,
        authorization_url: str,
        token_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize exchange.

        Args:
            client_id: OAuth client id (Services ID)
            authorization_url: Apple authorization endpoint
            token_url: Apple token endpoint
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.client_id = client_id
        self.authorization_endpoint = authorization_url
        self.token_endpoint = token_url
        self.timeout = timeout
        self._transport = transport

    def authorization_url(
        self,
        redirect_uri: str | None,
        scope: list[str],
        **params: Any,
    ) -> tuple[str, str]:
        """Build the Apple authorization URL.

        Args:
            redirect_uri: Registered callback URL
            scope: Requested scopes (may be empty)
            **params: Extra query parameters (response_mode, ...)

        Returns:
            (url, state)
        """
        state = params.pop("state", None) or generate_token(32)
        url = prepare_grant_uri(
            self.authorization_endpoint,
            client_id=self.client_id,
            response_type="code",
            redirect_uri=redirect_uri,
            scope=scope or None,
            state=state,
            **params,
        )
        return url, state

    async def exchange_code(
        self,
        code: str,
        *,
        client_secret: str,
        redirect_uri: str | None = None,
    ) -> dict[str, Any]:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the redirect
            client_secret: Freshly generated client secret for this call only
            redirect_uri: Must match the one used for authorization

        Returns:
            Token response (access_token, refresh_token, id_token, ...)

        Raises:
            TokenExchangeError: Endpoint returned an error or was unreachable
        """
        params: dict[str, Any] = {"code": code}
        if redirect_uri:
            params["redirect_uri"] = redirect_uri

        async with AsyncOAuth2Client(
            client_id=self.client_id,
            client_secret=client_secret,
            token_endpoint_auth_method="client_secret_post",
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                token = await client.fetch_token(
                    self.token_endpoint,
                    grant_type="authorization_code",
                    **params,
                )
            except OAuthError as e:
                logger.warning(f"Token endpoint rejected code {code[:8]}...: {e.error}")
                raise TokenExchangeError(
                    f"Failed to obtain access token: {e.error}", error=e.error
                ) from e
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Token endpoint unreachable: {e}")
                raise TokenExchangeError(f"Failed to obtain access token: {e}") from e

        return dict(token)
