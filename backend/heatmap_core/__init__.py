"""Core signal-fusion logic: indicators, regimes, Markov priors and fusion.

This package contains pure computation with no I/O dependencies
(no network or storage access). The application layer (heatmap_app/)
fetches candles and feeds them through it.
"""
