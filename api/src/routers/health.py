"""Health check router."""

from fastapi import APIRouter

from api.src.models.auth import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Liveness check.

    Does not touch any dependency; if the process can answer, it is up.
    """
    return HealthResponse(status="ok", message="Server is running")
