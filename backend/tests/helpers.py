"""Hand-built snapshots for combined, fusion and trading tests."""

from heatmap_core.models import (
    AdxReading,
    Bias,
    EmaReading,
    Filters,
    Ma200Reading,
    MacdReading,
    MarkovReading,
    Regime,
    RsiReading,
    Signal,
    StochRsiReading,
    TimeframeSnapshot,
    get_timeframe_config,
)

CLOSED_AT = 1_700_000_000_000


def make_snapshot(
    timeframe: str = "60",
    direction: int = 1,
    prior: float = 0.0,
    signal: Signal = Signal.NONE,
    closed_at: int = CLOSED_AT,
    **overrides,
) -> TimeframeSnapshot:
    """Snapshot with fully bullish (1), bearish (-1) or empty (0) readings."""
    config = get_timeframe_config(timeframe)
    fields = dict(
        entry_timeframe=timeframe,
        entry_label=config.label if config else timeframe,
        symbol="BTCUSDT",
        evaluated_at=closed_at,
        closed_at=closed_at,
        signal=signal,
        markov=MarkovReading(prior_score=prior),
    )

    if direction > 0:
        fields.update(
            price=112.0,
            bias=Bias.BULL,
            ema=EmaReading(ema10=110.0, ema50=105.0),
            ma200=Ma200Reading(value=100.0, slope=0.1),
            macd=MacdReading(value=2.0, signal=1.0, histogram=1.0),
            rsi_ltf=RsiReading(value=65.0),
            stoch_rsi=StochRsiReading(k=70.0, d=60.0),
            adx=AdxReading(value=30.0, plus_di=30.0, minus_di=10.0, slope=1.0),
            markov=MarkovReading(
                prior_score=prior,
                current_state=Regime.UP,
                distribution={"Down": 0.0, "Base": 0.0, "Reversal": 0.0, "Up": 1.0},
            ),
        )
    elif direction < 0:
        fields.update(
            price=88.0,
            bias=Bias.BEAR,
            ema=EmaReading(ema10=90.0, ema50=95.0),
            ma200=Ma200Reading(value=100.0, slope=-0.1),
            macd=MacdReading(value=-2.0, signal=-1.0, histogram=-1.0),
            rsi_ltf=RsiReading(value=35.0),
            stoch_rsi=StochRsiReading(k=30.0, d=40.0),
            adx=AdxReading(value=30.0, plus_di=10.0, minus_di=30.0, slope=1.0),
            markov=MarkovReading(
                prior_score=prior,
                current_state=Regime.DOWN,
                distribution={"Down": 1.0, "Base": 0.0, "Reversal": 0.0, "Up": 0.0},
            ),
        )

    fields.setdefault("filters", Filters())
    fields.update(overrides)
    return TimeframeSnapshot(**fields)
