"""Application services."""

from heatmap_app.services.heatmap_service import CandleSource, HeatmapEvaluation, HeatmapService

__all__ = [
    "CandleSource",
    "HeatmapEvaluation",
    "HeatmapService",
]
