"""Sign in with Apple for Python services."""

from apple_signin.auth import AppleSignInStrategy, AuthRequest, AuthResult, FlowKind

__version__ = "0.1.0"

__all__ = ["AppleSignInStrategy", "AuthRequest", "AuthResult", "FlowKind", "__version__"]
