"""Heatmap service: fetch candles per timeframe and evaluate every model."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

from heatmap_core.combined import get_multi_timeframe_signal, run_multi_timeframe_model, to_signal_snapshot
from heatmap_core.fusion import derive_quantum_composite_signal, peer_coupling
from heatmap_core.models import (
    Candle,
    FusedSignal,
    MultiTimeframeModelSummary,
    MultiTimeframeSignal,
    TimeframeConfig,
    TimeframeSignalSnapshot,
    TimeframeSnapshot,
    TradingSignal,
)
from heatmap_core.snapshot import SnapshotBuilder, build_base_snapshot
from heatmap_core.trading import derive_trading_signals
from heatmap_app.signal_config import SignalConfig

logger = logging.getLogger(__name__)


class CandleSource(Protocol):
    async def get_candles(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        ...


@dataclass
class HeatmapEvaluation:
    """Everything evaluated for one symbol."""

    symbol: str
    snapshots: list[TimeframeSnapshot]
    signal_snapshots: list[TimeframeSignalSnapshot] = field(default_factory=list)
    multi_timeframe: Optional[MultiTimeframeSignal] = None
    model_summary: Optional[MultiTimeframeModelSummary] = None
    fused: Optional[FusedSignal] = None
    trading_signals: list[TradingSignal] = field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "snapshots": [s.to_json_dict() for s in self.snapshots],
            "timeframes": [s.to_json_dict() for s in self.signal_snapshots],
            "multiTimeframe": self.multi_timeframe.to_json_dict() if self.multi_timeframe else None,
            "model": self.model_summary.to_json_dict() if self.model_summary else None,
            "fused": self.fused.to_json_dict() if self.fused else None,
            "tradingSignals": [s.to_json_dict() for s in self.trading_signals],
        }


class HeatmapService:
    """Evaluates the configured timeframes of a symbol concurrently."""

    def __init__(
        self,
        client: CandleSource,
        config: SignalConfig | None = None,
        bar_limit: int = 500,
        markov_window_bars: int = 400,
    ):
        self.client = client
        self.config = config or SignalConfig()
        self.bar_limit = bar_limit
        self.builder = SnapshotBuilder(
            markov_window_bars=markov_window_bars,
            cooldown_bars=self.config.cooldown_bars,
        )

    @property
    def timeframes(self) -> list[TimeframeConfig]:
        return self.config.get_timeframe_configs()

    async def _evaluate_timeframe(self, symbol: str, tf: TimeframeConfig) -> TimeframeSnapshot:
        """One timeframe; any failure yields the neutral base snapshot."""
        try:
            candles = await self.client.get_candles(symbol, tf.value, self.bar_limit)
            return self.builder.build(symbol, tf, candles)
        except Exception:
            logger.exception("Failed to evaluate %s %s", symbol, tf.label)
            return build_base_snapshot(symbol, tf)

    async def get_snapshots(self, symbol: str) -> list[TimeframeSnapshot]:
        """Snapshots for every configured timeframe, in ascending interval order."""
        tasks = [self._evaluate_timeframe(symbol, tf) for tf in self.timeframes]
        return list(await asyncio.gather(*tasks))

    def evaluate_snapshots(self, symbol: str, snapshots: Sequence[TimeframeSnapshot]) -> HeatmapEvaluation:
        """Run the combined, multi-timeframe, fusion and trading models."""
        signal_snapshots = [to_signal_snapshot(s) for s in snapshots if s.evaluated_at is not None]
        fused = derive_quantum_composite_signal(
            snapshots,
            weights=self.config.fusion,
            quantum_config=self.config.get_quantum_config(),
            news_sentiment=self.config.news_sentiment,
            coupling=peer_coupling(snapshots),
        )
        return HeatmapEvaluation(
            symbol=symbol,
            snapshots=list(snapshots),
            signal_snapshots=signal_snapshots,
            multi_timeframe=get_multi_timeframe_signal(signal_snapshots),
            model_summary=run_multi_timeframe_model(signal_snapshots),
            fused=fused,
            trading_signals=derive_trading_signals(snapshots),
        )

    async def evaluate(self, symbol: str) -> HeatmapEvaluation:
        """Fetch and evaluate every configured timeframe for ``symbol``."""
        snapshots = await self.get_snapshots(symbol)
        evaluation = self.evaluate_snapshots(symbol, snapshots)

        evaluated = sum(1 for s in snapshots if s.evaluated_at is not None)
        logger.info(
            "Evaluated %s: %d/%d timeframes, %d trading signals, fused=%s",
            symbol,
            evaluated,
            len(snapshots),
            len(evaluation.trading_signals),
            evaluation.fused.state.value if evaluation.fused else None,
        )
        return evaluation
