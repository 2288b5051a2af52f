"""Heatmap signal service: market data, evaluation and HTTP API."""
