"""Strategy instances for FastAPI dependency injection.

Strategies are built lazily from settings on first use and cached.
"""

from loguru import logger

from apple_signin.auth.strategy import AppleSignInStrategy, FlowKind
from apple_signin.settings import settings

_strategies: dict[FlowKind, AppleSignInStrategy] = {}


def get_strategy(flow: FlowKind) -> AppleSignInStrategy:
    """Get or create the strategy for a flow kind.

    Raises:
        ConfigurationError: Apple credentials missing from settings
    """
    strategy = _strategies.get(flow)
    if strategy is None:
        logger.info(f"Creating {flow.value} strategy from settings")
        strategy = AppleSignInStrategy(
            settings.apple.to_config(),
            flow=flow,
            jwks_cache_ttl=settings.apple.jwks_cache_ttl,
            http_timeout=settings.apple.http_timeout,
        )
        _strategies[flow] = strategy
    return strategy


def get_signin_strategy() -> AppleSignInStrategy:
    """Browser redirect flow strategy."""
    return get_strategy(FlowKind.REDIRECT)


def get_token_strategy() -> AppleSignInStrategy:
    """Native app code submission strategy."""
    return get_strategy(FlowKind.TOKEN)


def reset_strategies() -> None:
    """Forget cached strategies (after settings change)."""
    _strategies.clear()
