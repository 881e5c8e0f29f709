"""Health check endpoint."""

from fastapi import APIRouter

from privacy_gateway import __version__


def build_health_router(path: str, service_name: str) -> APIRouter:
    """Create the router serving the health check at ``path``."""
    router = APIRouter(tags=["health"])

    async def health() -> dict:
        """Basic health check endpoint."""
        return {"status": "healthy", "service": service_name, "version": __version__}

    router.add_api_route(path, health, methods=["GET"])
    return router
