"""Per-timeframe snapshot builder.

Turns a candle series into a fully populated ``TimeframeSnapshot``:
indicators, regime labels and Markov prior, composite signal, cooldown,
gating, filters and risk levels.
"""

from __future__ import annotations

import logging
from typing import Sequence

from heatmap_core.indicators import (
    IndicatorCalculator,
    average_recent,
    last_finite,
    previous_finite,
)
from heatmap_core.markov import resolve_markov_context
from heatmap_core.models.candle import Candle
from heatmap_core.models.config import (
    ATR_PERIOD,
    COOLDOWN_BARS,
    MARKOV_WINDOW_BARS,
    TimeframeConfig,
)
from heatmap_core.models.snapshot import (
    AdxReading,
    EmaReading,
    Ma200Reading,
    MacdReading,
    MarkovReading,
    RsiReading,
    StochRsiReading,
    TimeframeSnapshot,
)
from heatmap_core.regime import label_regimes
from heatmap_core.scoring import (
    evaluate_historical_signals,
    percent_change,
    resolve_bias,
    resolve_cooldown,
    resolve_filters,
    resolve_gating,
    resolve_momentum,
    resolve_moving_average_crosses,
    resolve_risk,
    resolve_signal,
    resolve_stage,
    resolve_stoch_event,
    resolve_strength_label,
    resolve_trend,
    resolve_votes,
)

logger = logging.getLogger(__name__)


def build_base_snapshot(symbol: str, config: TimeframeConfig) -> TimeframeSnapshot:
    """Neutral snapshot used before data arrives or when evaluation fails."""
    return TimeframeSnapshot(
        entry_timeframe=config.value,
        entry_label=config.label,
        symbol=symbol,
    )


class SnapshotBuilder:
    """Builds timeframe snapshots from candle series.

    Stateless between calls; one instance can serve every timeframe.
    """

    def __init__(
        self,
        markov_window_bars: int = MARKOV_WINDOW_BARS,
        cooldown_bars: int = COOLDOWN_BARS,
        atr_period: int = ATR_PERIOD,
    ):
        self.markov_window_bars = markov_window_bars
        self.cooldown_bars = cooldown_bars
        self.atr_period = atr_period

    def build(
        self,
        symbol: str,
        config: TimeframeConfig,
        candles: Sequence[Candle],
    ) -> TimeframeSnapshot:
        """
        Evaluate one timeframe.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            config: Timeframe indicator settings
            candles: Candles in ascending time order

        Returns:
            Snapshot; the neutral base snapshot when there are no candles
        """
        if not candles:
            return build_base_snapshot(symbol, config)

        calculator = IndicatorCalculator(
            rsi_period=config.rsi_period,
            stoch_length=config.stoch.stoch_length,
            k_smoothing=config.stoch.k_smoothing,
            d_smoothing=config.stoch.d_smoothing,
            atr_period=self.atr_period,
        )
        ind = calculator.calculate_all(candles)
        closes = [c.close for c in candles]

        price = closes[-1]
        ema10 = last_finite(ind.ema10)
        ema50 = last_finite(ind.ema50)
        ma200 = last_finite(ind.ma200)
        rsi_value = last_finite(ind.rsi)
        stoch_k = last_finite(ind.stoch.k)
        stoch_d = last_finite(ind.stoch.d)
        stoch_raw = last_finite(ind.stoch.raw)
        atr_value = last_finite(ind.atr)
        adx_value = last_finite(ind.adx.adx)

        markov = resolve_markov_context(label_regimes(ind, self.markov_window_bars))

        bias = resolve_bias(price, ma200)
        trend = resolve_trend(ema10, ema50)
        momentum = resolve_momentum(rsi_value, stoch_k, stoch_d)
        signal = resolve_signal(trend, bias, momentum, stoch_raw)

        history = evaluate_historical_signals(
            closes, ind.ema10, ind.ema50, ind.ma200, ind.rsi, ind.stoch
        )
        cooldown = resolve_cooldown(history, self.cooldown_bars)
        gating = resolve_gating(trend, momentum, bias)
        stage = resolve_stage(signal, cooldown.ok, gating.long.timing, gating.short.timing)

        adx_previous = previous_finite(ind.adx.adx)
        adx_slope = adx_value - adx_previous if adx_value is not None and adx_previous is not None else None

        close_time = candles[-1].close_time
        logger.debug(
            "%s %s: signal=%s stage=%s bias=%s prior=%.3f",
            symbol, config.label, signal.value, stage.value, bias.value, markov.prior_score,
        )

        return TimeframeSnapshot(
            entry_timeframe=config.value,
            entry_label=config.label,
            symbol=symbol,
            evaluated_at=close_time,
            closed_at=close_time,
            bias=bias,
            strength=resolve_strength_label(trend, momentum, bias),
            signal=signal,
            stage=stage,
            stoch_event=resolve_stoch_event(
                stoch_raw,
                previous_finite(ind.stoch.raw),
                stoch_k,
                stoch_d,
                previous_finite(ind.stoch.k),
                previous_finite(ind.stoch.d),
            ),
            ema=EmaReading(ema10=ema10, ema50=ema50),
            moving_average_crosses=resolve_moving_average_crosses(ind.ema10, ind.ema50, ind.ma200),
            votes=resolve_votes(trend, momentum, bias, stoch_raw),
            stoch_rsi=StochRsiReading(
                k=stoch_k,
                d=stoch_d,
                raw_normalized=stoch_raw / 100.0 if stoch_raw is not None else None,
            ),
            rsi_ltf=RsiReading(
                value=rsi_value,
                sma5=average_recent(ind.rsi, 5),
                ok_long=rsi_value is not None and rsi_value <= 40,
                ok_short=rsi_value is not None and rsi_value >= 60,
            ),
            filters=resolve_filters(price, ma200, atr_value, bias),
            gating=gating,
            cooldown=cooldown,
            risk=resolve_risk(price, atr_value),
            price=price,
            ma200=Ma200Reading(value=ma200, slope=percent_change(ma200, previous_finite(ind.ma200))),
            macd=MacdReading(
                value=last_finite(ind.macd.line),
                signal=last_finite(ind.macd.signal),
                histogram=last_finite(ind.macd.histogram),
            ),
            adx=AdxReading(
                value=adx_value,
                plus_di=last_finite(ind.adx.plus_di),
                minus_di=last_finite(ind.adx.minus_di),
                slope=adx_slope,
            ),
            markov=MarkovReading(
                prior_score=markov.prior_score,
                current_state=markov.current_state,
                transition_matrix=markov.transition_matrix,
                distribution=markov.distribution,
            ),
        )
