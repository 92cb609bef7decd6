"""Root API router and middleware registration."""

from fastapi import APIRouter, FastAPI

from audit_trail.api.middleware import AuditMiddleware
from audit_trail.core.config import Settings


def create_router() -> APIRouter:
    """Create the root API router.

    Returns:
        Configured API router.
    """
    router = APIRouter()

    @router.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    app.add_middleware(
        AuditMiddleware,
        trusted_proxy_headers=settings.trusted_proxy_header_list,
        skip_paths=settings.audit_skip_path_list,
    )
