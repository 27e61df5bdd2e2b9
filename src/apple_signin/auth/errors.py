"""Exception hierarchy for Sign in with Apple.

Two families matter to callers:
- IdentityTokenError: the presented credentials were rejected. The strategy
  turns these into a FAIL result (normal failed-login flow).
- KeyStoreError, TokenExchangeError, AuthorizationError: something upstream
  broke. The strategy turns these into an ERROR result (5xx-class).

ConfigurationError is only raised while building a strategy.
"""


class AppleAuthError(Exception):
    """Base class for all Sign in with Apple errors."""


class ConfigurationError(AppleAuthError, ValueError):
    """Strategy options or verify callback are invalid."""


class IdentityTokenError(AppleAuthError):
    """Identity token failed decoding, pinning, or claim verification."""


class SigningKeyNotFoundError(IdentityTokenError):
    """No key in Apple's key set matches the token's key id."""

    def __init__(self, kid: str):
        super().__init__(f"Unable to find a signing key that matches '{kid}'")
        self.kid = kid


class KeyStoreError(AppleAuthError):
    """Apple's public key set could not be fetched or parsed."""


class TokenExchangeError(AppleAuthError):
    """Authorization code could not be exchanged for tokens."""

    def __init__(self, message: str, error: str | None = None):
        super().__init__(message)
        self.error = error


class AuthorizationError(AppleAuthError):
    """Authorization server redirected back with an error code."""

    def __init__(self, message: str | None, code: str, uri: str | None = None):
        super().__init__(message or code)
        self.code = code
        self.uri = uri
