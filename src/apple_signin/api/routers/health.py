"""Health endpoint.

Public, no authentication required.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from apple_signin import __version__
from apple_signin.settings import settings

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status (ok, degraded)")
    version: str = Field(description="Application version")
    apple_configured: bool = Field(description="Whether Apple credentials are set")


@router.get("/health")
async def health() -> HealthResponse:
    """Health check endpoint.

    Returns:
        HealthResponse with status and version
    """
    apple = settings.apple
    configured = all((apple.client_id, apple.team_id, apple.key_id)) and bool(
        apple.private_key or apple.private_key_path
    )
    return HealthResponse(
        status="ok" if configured else "degraded",
        version=__version__,
        apple_configured=configured,
    )
