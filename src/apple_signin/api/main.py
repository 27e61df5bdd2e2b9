"""Sign in with Apple API server.

Running the Server
------------------

Development (with auto-reload):
    uv run apple-signin serve --reload

Endpoints
---------
- /health                : Health check with version
- /auth/apple/login      : Redirect to Apple
- /auth/apple/callback   : Apple redirect target (GET query or POST form_post)
- /auth/apple/token      : Native app code submission
- /docs                  : OpenAPI documentation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from apple_signin import __version__
from apple_signin.api.routers.apple import router as apple_router
from apple_signin.api.routers.health import router as health_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Sign in with Apple API")
    yield
    logger.info("Shutting down Sign in with Apple API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Sign in with Apple",
        description="Server side Sign in with Apple: client secrets, identity tokens, login flows",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(health_router)  # /health - public
    app.include_router(apple_router)   # /auth/apple/* - login flows

    return app


app = create_app()
