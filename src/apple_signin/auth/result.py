"""Authentication outcome.

authenticate() never raises for per-request conditions. It returns one of:

- SUCCESS: user authenticated (`user`, optional `info`)
- FAIL: credentials presented but rejected, or the user cancelled
  (`challenge` with a human-readable message, optional `status`)
- ERROR: system or upstream failure (`error`)
- REDIRECT: send the browser to Apple (`url`, `state`)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AuthResultKind(str, Enum):
    """Outcome kinds."""

    SUCCESS = "success"
    FAIL = "fail"
    ERROR = "error"
    REDIRECT = "redirect"


@dataclass
class AuthResult:
    kind: AuthResultKind
    user: Any = None
    info: Any = None
    challenge: dict[str, Any] = field(default_factory=dict)
    status: int | None = None
    error: BaseException | None = None
    url: str | None = None
    state: str | None = None

    @classmethod
    def success(cls, user: Any, info: Any = None) -> "AuthResult":
        return cls(AuthResultKind.SUCCESS, user=user, info=info)

    @classmethod
    def fail(cls, challenge: Any = None, status: int | None = None) -> "AuthResult":
        if challenge is None:
            challenge = {}
        elif isinstance(challenge, Mapping):
            challenge = dict(challenge)
        else:
            challenge = {"message": str(challenge)}
        return cls(AuthResultKind.FAIL, challenge=challenge, status=status)

    @classmethod
    def failure(cls, error: BaseException) -> "AuthResult":
        return cls(AuthResultKind.ERROR, error=error)

    @classmethod
    def redirect(cls, url: str, state: str | None = None) -> "AuthResult":
        return cls(AuthResultKind.REDIRECT, url=url, state=state)

    @property
    def ok(self) -> bool:
        return self.kind is AuthResultKind.SUCCESS

    @property
    def message(self) -> str | None:
        """Human-readable reason for FAIL and ERROR results."""
        if self.kind is AuthResultKind.FAIL:
            return self.challenge.get("message")
        if self.kind is AuthResultKind.ERROR and self.error is not None:
            return str(self.error)
        return None
