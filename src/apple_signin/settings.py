"""Application settings using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from apple_signin.auth.config import AppleSignInConfig, load_config
from apple_signin.auth.constants import AUTHORIZATION_URL, PUBLIC_KEYS_URL, TOKEN_URL
from apple_signin.auth.errors import ConfigurationError


class AppleSettings(BaseSettings):
    """Sign in with Apple credentials and endpoints."""

    model_config = SettingsConfigDict(
        env_prefix="APPLE__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: str = Field(default="", description="Services ID, e.g. com.example.web")
    team_id: str = Field(default="", description="Apple Developer team ID")
    key_id: str = Field(default="", description="Key ID of the Sign in with Apple key")
    private_key: str = Field(default="", description="Private key (PEM contents of the .p8 file)")
    private_key_path: str | None = Field(
        default=None,
        description="Path to the .p8 private key file (used when private_key is empty)",
    )
    callback_url: str | None = Field(default=None, description="Registered redirect URI")
    scope: str | None = Field(default=None, description="Space separated scopes, e.g. 'name email'")

    authorization_url: str = Field(default=AUTHORIZATION_URL)
    token_url: str = Field(default=TOKEN_URL)
    keys_url: str = Field(default=PUBLIC_KEYS_URL)

    jwks_cache_ttl: int = Field(default=3600, description="Apple public key cache TTL in seconds")
    http_timeout: float = Field(default=10.0, description="Timeout for calls to Apple in seconds")

    def load_private_key(self) -> str:
        """Return the private key, reading private_key_path when needed.

        Raises:
            ConfigurationError: Key file configured but unreadable
        """
        if self.private_key:
            return self.private_key
        if not self.private_key_path:
            return ""
        try:
            return Path(self.private_key_path).expanduser().read_text()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read Apple private key file {self.private_key_path}: {e.strerror}"
            ) from e

    def to_config(self) -> AppleSignInConfig:
        """Build a validated strategy config.

        Raises:
            ConfigurationError: Required credentials missing
        """
        return load_config(
            {
                "client_id": self.client_id,
                "team_id": self.team_id,
                "key_id": self.key_id,
                "private_key": self.load_private_key(),
                "callback_url": self.callback_url,
                "scope": self.scope,
                "authorization_url": self.authorization_url,
                "token_url": self.token_url,
                "keys_url": self.keys_url,
            }
        )


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APPLE_SIGNIN_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    api_reload: bool = Field(default=False, description="Auto-reload on code changes")

    apple: AppleSettings = Field(default_factory=AppleSettings)


settings = Settings()
