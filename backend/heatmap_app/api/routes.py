"""REST API routes."""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from heatmap_app.config import get_settings
from heatmap_app.services import HeatmapService

logger = logging.getLogger(__name__)

router = APIRouter()

_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]{2,20}$")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timeframes: list[str]


def get_heatmap_service(request: Request) -> HeatmapService:
    return request.app.state.heatmap_service


def resolve_symbol(symbol: Optional[str]) -> str:
    """Upper-cased symbol, default when omitted; 400 when malformed."""
    value = (symbol or get_settings().default_symbol).strip().upper()
    if not _SYMBOL_PATTERN.match(value):
        raise HTTPException(status_code=400, detail=f"Invalid symbol: {symbol!r}")
    return value


@router.get("/health", response_model=HealthResponse)
async def health(service: HeatmapService = Depends(get_heatmap_service)):
    """Health check endpoint."""
    return HealthResponse(status="healthy", timeframes=[tf.value for tf in service.timeframes])


@router.get("/heatmap")
async def get_heatmap(
    symbol: Optional[str] = Query(None, description="Trading pair, e.g. BTCUSDT"),
    service: HeatmapService = Depends(get_heatmap_service),
):
    """Per-timeframe snapshots for a symbol."""
    resolved = resolve_symbol(symbol)
    snapshots = await service.get_snapshots(resolved)
    return {
        "symbol": resolved,
        "snapshots": [s.to_json_dict() for s in snapshots],
    }


@router.get("/signals")
async def get_signals(
    symbol: Optional[str] = Query(None, description="Trading pair, e.g. BTCUSDT"),
    service: HeatmapService = Depends(get_heatmap_service),
):
    """Snapshots plus combined, multi-timeframe, fused and trading signals."""
    resolved = resolve_symbol(symbol)
    evaluation = await service.evaluate(resolved)
    return evaluation.to_json_dict()
