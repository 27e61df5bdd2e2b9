"""Strategy configuration.

AppleSignInConfig is the validated, immutable option set a strategy is built
from. Missing key material is a configuration error raised at construction,
never a per-request failure.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from apple_signin.auth.constants import AUTHORIZATION_URL, PUBLIC_KEYS_URL, TOKEN_URL
from apple_signin.auth.errors import ConfigurationError


class AppleSignInConfig(BaseModel):
    """Options for AppleSignInStrategy.

    Apple has no user profile endpoint: the profile is built from the identity
    token and the redirect body, so there is no profile-fetch option, and the
    request is always handed to the internal verify stage.
    `pass_req_to_callback` only selects which 5-argument verify shape the
    caller supplied.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    client_id: str = Field(min_length=1, description="Services ID (or bundle ID for native apps)")
    key_id: str = Field(min_length=1, description="Key ID of the Sign in with Apple private key")
    private_key: str = Field(min_length=1, description="PEM-encoded ES256 private key (.p8 contents)")
    team_id: str = Field(min_length=1, description="Apple Developer team ID")

    callback_url: str | None = Field(default=None, description="Registered redirect URI")
    authorization_url: str = Field(default=AUTHORIZATION_URL)
    token_url: str = Field(default=TOKEN_URL)
    keys_url: str = Field(default=PUBLIC_KEYS_URL)

    scope: str | list[str] | None = Field(
        default=None,
        description="Requested scopes, e.g. 'name email' or ['name', 'email']",
    )
    pass_req_to_callback: bool = Field(
        default=False,
        description="A 5-argument verify callback takes the request first",
    )

    @property
    def scopes(self) -> list[str]:
        """Configured scope as a list (empty when none requested)."""
        return normalize_scope(self.scope)

    def __repr__(self) -> str:
        # private_key is never rendered
        return (
            f"AppleSignInConfig(client_id={self.client_id!r}, key_id={self.key_id!r}, "
            f"team_id={self.team_id!r}, scope={self.scope!r})"
        )

    __str__ = __repr__


def normalize_scope(scope: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Turn a space separated string or a sequence into a list of scopes."""
    if not scope:
        return []
    if isinstance(scope, str):
        return scope.split()
    return [s for s in scope if s]


def load_config(options: AppleSignInConfig | Mapping[str, Any]) -> AppleSignInConfig:
    """Validate strategy options.

    Args:
        options: A ready config, or a mapping of option names to values

    Returns:
        Validated AppleSignInConfig

    Raises:
        ConfigurationError: A required option is missing or empty
    """
    if isinstance(options, AppleSignInConfig):
        return options
    try:
        return AppleSignInConfig.model_validate(dict(options))
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) for err in e.errors()
        )
        raise ConfigurationError(
            f"AppleSignInStrategy options are invalid: {fields}"
        ) from e
