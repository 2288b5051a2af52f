"""Exchange API clients."""

from heatmap_app.clients.bybit_rest import BybitAPIError, BybitRestClient, RateLimiter

__all__ = [
    "BybitAPIError",
    "BybitRestClient",
    "RateLimiter",
]
