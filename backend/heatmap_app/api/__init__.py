"""API endpoints."""

from heatmap_app.api.routes import get_heatmap_service, router

__all__ = [
    "get_heatmap_service",
    "router",
]
