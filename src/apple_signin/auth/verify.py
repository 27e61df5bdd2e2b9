"""Verify callback normalization.

Callers may pass a verify callback in one of several shapes, passport style.
The shape is resolved once, when the strategy is built, from the number of
required positional parameters:

    arity 6:                (req, access_token, refresh_token, params, profile, done)
    arity 5, pass_req:      (req, access_token, refresh_token, profile, done)
    arity 5:                (access_token, refresh_token, params, profile, done)
    arity 4:                (access_token, refresh_token, profile, done)
    no callback:            the identity record itself becomes the user

Every shape is adapted to one canonical coroutine:

    await verify(req, access_token, refresh_token, params, profile, done)

`done(error=None, user=None, info=None, status=None)` reports the outcome; a
falsy user rejects with `info` as the challenge and an optional HTTP status.
Callbacks may be plain functions or coroutine functions.
"""

import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from loguru import logger

from apple_signin.auth.errors import ConfigurationError
from apple_signin.auth.result import AuthResult

MIN_VERIFY_ARITY = 4
MAX_VERIFY_ARITY = 6

CanonicalVerify = Callable[[Any, Any, Any, Any, Any, "Done"], Awaitable[None]]


class VerifyShape(str, Enum):
    DEFAULT = "default"
    REQ_PARAMS_PROFILE = "req_params_profile"
    REQ_PROFILE = "req_profile"
    PARAMS_PROFILE = "params_profile"
    PROFILE = "profile"


class Done:
    """Collects the outcome a verify callback reports.

    Only the first call counts; later calls are logged and ignored.
    """

    def __init__(self) -> None:
        self.called = False
        self.error: BaseException | None = None
        self.user: Any = None
        self.info: Any = None
        self.status: int | None = None

    def __call__(
        self,
        error: BaseException | None = None,
        user: Any = None,
        info: Any = None,
        status: int | None = None,
    ) -> None:
        if self.called:
            logger.warning("Verify callback called done() more than once")
            return
        self.called = True
        self.error = error
        self.user = user
        self.info = info
        self.status = status

    def to_result(self) -> AuthResult:
        """Map the reported outcome to an AuthResult."""
        if not self.called:
            return AuthResult.failure(RuntimeError("verify callback returned without calling done()"))
        if self.error is not None:
            return AuthResult.failure(self.error)
        if not self.user:
            return AuthResult.fail(self.info, status=self.status)
        return AuthResult.success(self.user, self.info)


def positional_arity(func: Callable[..., Any]) -> int:
    """Count required positional parameters of a callable.

    Raises:
        ConfigurationError: Signature takes *args or cannot be inspected
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise ConfigurationError("verify callback signature cannot be inspected") from e

    arity = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            raise ConfigurationError("verify callback must not take *args")
        if (
            param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and param.default is inspect.Parameter.empty
        ):
            arity += 1
    return arity


def resolve_shape(verify: Callable[..., Any] | None, pass_req_to_callback: bool = False) -> VerifyShape:
    """Determine which shape a verify callback has.

    Raises:
        ConfigurationError: Not callable, or arity outside [4, 6]
    """
    if verify is None:
        return VerifyShape.DEFAULT
    if not callable(verify):
        raise ConfigurationError("verify callback must be callable")

    arity = positional_arity(verify)
    if not MIN_VERIFY_ARITY <= arity <= MAX_VERIFY_ARITY:
        raise ConfigurationError(
            f"AppleSignInStrategy verify callback must take between "
            f"{MIN_VERIFY_ARITY} and {MAX_VERIFY_ARITY} arguments (got {arity})"
        )
    if arity == 6:
        return VerifyShape.REQ_PARAMS_PROFILE
    if arity == 5:
        return VerifyShape.REQ_PROFILE if pass_req_to_callback else VerifyShape.PARAMS_PROFILE
    return VerifyShape.PROFILE


def normalize_verify(
    verify: Callable[..., Any] | None,
    pass_req_to_callback: bool = False,
) -> tuple[VerifyShape, CanonicalVerify]:
    """Adapt a verify callback of any accepted shape to the canonical one.

    Args:
        verify: Caller's callback (or None)
        pass_req_to_callback: A 5-argument callback takes the request first

    Returns:
        (shape, canonical coroutine function)

    Raises:
        ConfigurationError: Unsupported callback
    """
    shape = resolve_shape(verify, pass_req_to_callback)

    async def canonical(req, access_token, refresh_token, params, profile, done: Done) -> None:
        if shape is VerifyShape.DEFAULT:
            done(None, profile)
            return
        if shape is VerifyShape.REQ_PARAMS_PROFILE:
            args = (req, access_token, refresh_token, params, profile, done)
        elif shape is VerifyShape.REQ_PROFILE:
            args = (req, access_token, refresh_token, profile, done)
        elif shape is VerifyShape.PARAMS_PROFILE:
            args = (access_token, refresh_token, params, profile, done)
        else:
            args = (access_token, refresh_token, profile, done)

        outcome = verify(*args)
        if inspect.isawaitable(outcome):
            await outcome

    return shape, canonical
