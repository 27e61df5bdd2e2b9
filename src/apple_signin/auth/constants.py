"""Sign in with Apple protocol constants.

References:
- https://developer.apple.com/documentation/sign_in_with_apple/generate_and_validate_tokens
- https://developer.apple.com/documentation/sign_in_with_apple/fetch_apple_s_public_key_for_verifying_token_signature
"""

BASE_DOMAIN = "https://appleid.apple.com"
AUTHORIZATION_URL = f"{BASE_DOMAIN}/auth/authorize"
TOKEN_URL = f"{BASE_DOMAIN}/auth/token"
PUBLIC_KEYS_URL = f"{BASE_DOMAIN}/auth/keys"

# ECDSA with the P-256 curve and SHA-256, required for the client secret
KEY_SIGN_ALGORITHM = "ES256"

# Apple publishes its identity token keys as RSA JWKs
KEY_VERIFY_ALGORITHM = "RS256"

# 6 months in seconds, the maximum lifetime Apple accepts for a client secret
MAX_TOKEN_DURATION = 15777000

# Only error code Apple sends back on the redirect (user pressed "Cancel")
USER_CANCELLED_ERROR = "user_cancelled_authorize"

RESPONSE_MODE_FORM_POST = "form_post"
RESPONSE_MODE_QUERY = "query"

PROVIDER_NAME = "apple"
