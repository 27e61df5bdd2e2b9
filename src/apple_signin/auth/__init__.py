"""Sign in with Apple authentication.

- ES256 client secret generation (per token exchange)
- RS256 identity token validation against Apple's rotating JWKS
- AppleSignInStrategy: redirect and native-token flows over a generic
  OAuth2 code exchange
"""

from apple_signin.auth.client_secret import ClientSecretGenerator
from apple_signin.auth.config import AppleSignInConfig, load_config
from apple_signin.auth.errors import (
    AppleAuthError,
    AuthorizationError,
    ConfigurationError,
    IdentityTokenError,
    KeyStoreError,
    SigningKeyNotFoundError,
    TokenExchangeError,
)
from apple_signin.auth.exchange import AuthlibTokenExchange, TokenExchange
from apple_signin.auth.identity_token import IdentityTokenValidator
from apple_signin.auth.key_store import JWKSKeyStore, SigningKeyStore
from apple_signin.auth.profile import IdentityRecord, build_identity_record
from apple_signin.auth.request import AuthRequest
from apple_signin.auth.result import AuthResult, AuthResultKind
from apple_signin.auth.strategy import AppleSignInStrategy, FlowKind
from apple_signin.auth.verify import Done, VerifyShape

__all__ = [
    "AppleAuthError",
    "AppleSignInConfig",
    "AppleSignInStrategy",
    "AuthRequest",
    "AuthResult",
    "AuthResultKind",
    "AuthlibTokenExchange",
    "AuthorizationError",
    "ClientSecretGenerator",
    "ConfigurationError",
    "Done",
    "FlowKind",
    "IdentityRecord",
    "IdentityTokenError",
    "IdentityTokenValidator",
    "JWKSKeyStore",
    "KeyStoreError",
    "SigningKeyNotFoundError",
    "SigningKeyStore",
    "TokenExchange",
    "TokenExchangeError",
    "VerifyShape",
    "build_identity_record",
    "load_config",
]
