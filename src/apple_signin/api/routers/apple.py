"""Sign in with Apple endpoints.

- GET       /auth/apple/login     - Redirect to Apple, state kept in a cookie
- GET|POST  /auth/apple/callback  - Apple redirect target (query or form_post)
- POST      /auth/apple/token     - Native apps submit code + id_token + user

Responses:
- success: 200 with the user (identity record by default)
- rejected: 401 (or 400 for malformed token requests)
- upstream failure: 502, anything else: 500
"""

import secrets
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse, Response
from loguru import logger
from pydantic import BaseModel

from apple_signin.api.dependencies import get_signin_strategy, get_token_strategy
from apple_signin.auth.errors import AppleAuthError
from apple_signin.auth.request import AuthRequest
from apple_signin.auth.result import AuthResult, AuthResultKind
from apple_signin.auth.strategy import AppleSignInStrategy

router = APIRouter(prefix="/auth/apple", tags=["Sign in with Apple"])

SigninStrategy = Annotated[AppleSignInStrategy, Depends(get_signin_strategy)]
TokenStrategy = Annotated[AppleSignInStrategy, Depends(get_token_strategy)]

STATE_COOKIE = "apple_signin_state"
STATE_COOKIE_MAX_AGE = 600


def _state_matches(request: Request, auth_request: AuthRequest) -> bool:
    expected = request.cookies.get(STATE_COOKIE)
    received = auth_request.params.get("state")
    if not expected or not isinstance(received, str):
        return False
    return secrets.compare_digest(expected.encode(), received.encode())


def _serialize_user(user: Any) -> Any:
    if isinstance(user, BaseModel):
        return user.model_dump(by_alias=True)
    return jsonable_encoder(user)


def to_response(result: AuthResult) -> Response:
    """Map an AuthResult to an HTTP response."""
    if result.kind is AuthResultKind.REDIRECT:
        return RedirectResponse(result.url, status_code=302)

    if result.kind is AuthResultKind.SUCCESS:
        return JSONResponse({"user": _serialize_user(result.user), "info": jsonable_encoder(result.info)})

    if result.kind is AuthResultKind.FAIL:
        return JSONResponse(
            status_code=result.status or 401,
            content={"error": "authentication_failed", "message": result.message},
        )

    # Only our own errors carry messages safe to return to clients
    if isinstance(result.error, AppleAuthError):
        logger.error(f"Apple authentication error: {result.error}")
        return JSONResponse(
            status_code=502,
            content={"error": "upstream_error", "message": str(result.error)},
        )
    logger.error(f"Unexpected authentication error: {type(result.error).__name__}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "message": "Authentication failed unexpectedly"},
    )


@router.get("/login")
async def login(
    strategy: SigninStrategy,
    scope: str | None = Query(default=None, description="Override configured scope"),
) -> Response:
    """Start the redirect flow.

    Returns:
        302 to Apple's authorization endpoint
    """
    options = {"scope": scope} if scope else {}
    result = await strategy.authenticate(AuthRequest(method="GET"), **options)
    response = to_response(result)
    if result.kind is AuthResultKind.REDIRECT and result.state:
        # Apple form_posts cross-site, so the cookie must be SameSite=None
        response.set_cookie(
            STATE_COOKIE,
            result.state,
            max_age=STATE_COOKIE_MAX_AGE,
            path=router.prefix,
            secure=True,
            httponly=True,
            samesite="none",
        )
    return response


@router.api_route("/callback", methods=["GET", "POST"])
async def callback(request: Request, strategy: SigninStrategy) -> Response:
    """Apple redirect target.

    Apple posts here (`form_post`) when scopes were requested, otherwise it
    redirects with a query string.

    A callback carrying a code must echo the state issued by /login, which
    is held in the `apple_signin_state` cookie.
    """
    auth_request = await AuthRequest.from_starlette(request)
    if auth_request.params.get("code") and not _state_matches(request, auth_request):
        logger.warning("Rejected Apple callback with missing or mismatched state")
        result = AuthResult.fail("Invalid authorization state")
    else:
        result = await strategy.authenticate(auth_request)
    response = to_response(result)
    response.delete_cookie(STATE_COOKIE, path=router.prefix, secure=True, httponly=True, samesite="none")
    return response


@router.post("/token")
async def token(request: Request, strategy: TokenStrategy) -> Response:
    """Exchange a code obtained by a native app.

    Body (form or JSON): code, optional id_token, optional user (JSON string,
    first login only).
    """
    auth_request = await AuthRequest.from_starlette(request)
    result = await strategy.authenticate(auth_request)
    return to_response(result)
