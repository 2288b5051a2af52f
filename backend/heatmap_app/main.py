"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from heatmap_app.api import router
from heatmap_app.clients import BybitRestClient
from heatmap_app.config import get_settings
from heatmap_app.services import HeatmapService
from heatmap_app.signal_config import load_signal_config

logger = logging.getLogger(__name__)


def build_service() -> tuple[HeatmapService, BybitRestClient]:
    """Wire the Bybit client and the heatmap service from settings."""
    settings = get_settings()
    config_path = Path(settings.signal_config_path) if settings.signal_config_path else None
    signal_config = load_signal_config(config_path)

    client = BybitRestClient(
        base_url=settings.bybit_base_url,
        category=settings.bybit_category,
        timeout=settings.request_timeout,
    )
    service = HeatmapService(
        client,
        config=signal_config,
        bar_limit=settings.bar_limit,
        markov_window_bars=settings.markov_window_bars,
    )
    return service, client


def create_app(service: HeatmapService | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Pre-built service (tests); built from settings when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        client = None
        if service is None:
            app.state.heatmap_service, client = build_service()
        else:
            app.state.heatmap_service = service
        logger.info(
            "Heatmap service ready: timeframes=%s",
            [tf.value for tf in app.state.heatmap_service.timeframes],
        )
        try:
            yield
        finally:
            if client is not None:
                await client.close()
            logger.info("Heatmap service stopped")

    app = FastAPI(
        title="Heatmap Signals",
        description="Multi-timeframe indicator heatmap with Markov and quantum-walk fusion",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Heatmap Signals",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "heatmap_app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
