"""Tests for composite scoring, cooldown, gating and risk."""

import pytest

from heatmap_core.models import Bias, Direction, Signal, Stage
from heatmap_core.scoring import (
    detect_cross,
    resolve_atr_status,
    resolve_bias,
    resolve_cooldown,
    resolve_filters,
    resolve_gating,
    resolve_ma_distance_status,
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


class TestDirectionalReads:
    """Tests for bias, trend and momentum."""

    def test_bias_neutral_band(self):
        assert resolve_bias(100.0, None) == Bias.NEUTRAL
        assert resolve_bias(100.05, 100.0) == Bias.NEUTRAL
        assert resolve_bias(101.0, 100.0) == Bias.BULL
        assert resolve_bias(99.0, 100.0) == Bias.BEAR

    def test_trend(self):
        assert resolve_trend(2.0, 1.0) == Direction.BULLISH
        assert resolve_trend(1.0, 2.0) == Direction.BEARISH
        assert resolve_trend(1.0, 1.0) == Direction.NEUTRAL
        assert resolve_trend(None, 1.0) == Direction.NEUTRAL

    def test_momentum_votes(self):
        assert resolve_momentum(60.0, 70.0, 60.0) == Direction.BULLISH
        assert resolve_momentum(40.0, 30.0, 40.0) == Direction.BEARISH
        assert resolve_momentum(50.0, 50.0, 50.0) == Direction.NEUTRAL
        # RSI bullish, stoch bearish: votes cancel
        assert resolve_momentum(60.0, 30.0, 40.0) == Direction.NEUTRAL
        assert resolve_momentum(None, 30.0, 40.0) == Direction.NEUTRAL

    def test_strength_label(self):
        assert resolve_strength_label(Direction.BULLISH, Direction.BULLISH, Bias.BULL) == "strong"
        assert resolve_strength_label(Direction.BULLISH, Direction.BULLISH, Bias.NEUTRAL) == "standard"
        assert resolve_strength_label(Direction.BULLISH, Direction.BEARISH, Bias.NEUTRAL) == "weak"


class TestSignal:
    """Tests for LONG/SHORT/NONE resolution."""

    def test_long(self):
        assert resolve_signal(Direction.BULLISH, Bias.BULL, Direction.BULLISH, 50.0) == Signal.LONG
        assert resolve_signal(Direction.BULLISH, Bias.NEUTRAL, Direction.BULLISH, None) == Signal.LONG

    def test_long_blocked(self):
        assert resolve_signal(Direction.BULLISH, Bias.BULL, Direction.BULLISH, 90.0) == Signal.NONE
        assert resolve_signal(Direction.BULLISH, Bias.BEAR, Direction.BULLISH, 50.0) == Signal.NONE
        assert resolve_signal(Direction.BULLISH, Bias.BULL, Direction.NEUTRAL, 50.0) == Signal.NONE

    def test_short(self):
        assert resolve_signal(Direction.BEARISH, Bias.BEAR, Direction.BEARISH, 50.0) == Signal.SHORT
        assert resolve_signal(Direction.BEARISH, Bias.BEAR, Direction.BEARISH, 10.0) == Signal.NONE
        assert resolve_signal(Direction.BEARISH, Bias.BULL, Direction.BEARISH, 50.0) == Signal.NONE


class TestVotesAndEvents:
    """Tests for votes, stochastic events and MA crosses."""

    def test_votes_all_bullish(self):
        votes = resolve_votes(Direction.BULLISH, Direction.BULLISH, Bias.BULL, 30.0)

        assert votes.bull == 4
        assert votes.bear == 0
        assert votes.total == 4
        assert votes.mode == "majority"
        assert [v.timeframe for v in votes.breakdown] == ["trend", "momentum", "bias", "stoch"]

    def test_votes_without_stoch(self):
        votes = resolve_votes(Direction.NEUTRAL, Direction.NEUTRAL, Bias.NEUTRAL, None)

        assert votes.total == 3
        assert votes.mode == "all"
        assert votes.breakdown[-1].vote == "na"

    def test_stoch_events(self):
        assert resolve_stoch_event(30.0, 5.0, 20.0, 15.0, 10.0, 15.0) == "cross_up_from_oversold"
        assert resolve_stoch_event(70.0, 95.0, 80.0, 85.0, 90.0, 85.0) == "cross_down_from_overbought"
        assert resolve_stoch_event(50.0, 50.0, 50.0, 50.0, 50.0, 50.0) is None
        assert resolve_stoch_event(None, 5.0, 20.0, 15.0, 10.0, 15.0) is None

    def test_detect_cross(self):
        assert detect_cross([1.0, 3.0], [2.0, 2.0]) == "cross_up"
        assert detect_cross([3.0, 1.0], [2.0, 2.0]) == "cross_down"
        assert detect_cross([3.0, 4.0], [2.0, 2.0]) is None
        assert detect_cross([1.0], [2.0]) is None
        assert detect_cross([None, 3.0], [2.0, 2.0]) is None

    def test_moving_average_crosses(self):
        crosses = resolve_moving_average_crosses([1.0, 3.0], [2.0, 2.0], [None, None])

        assert len(crosses) == 1
        assert crosses[0].pair == "ema10-ema50"
        assert crosses[0].direction == "bullish"

    def test_golden_cross(self):
        crosses = resolve_moving_average_crosses([5.0, 5.0], [1.0, 3.0], [2.0, 2.0])

        assert [(c.pair, c.direction) for c in crosses] == [("ema50-ma200", "golden")]


class TestCooldown:
    """Tests for cooldown resolution."""

    def test_no_signals(self):
        cooldown = resolve_cooldown([Signal.NONE] * 10)

        assert cooldown.ok is True
        assert cooldown.bars_since_signal is None
        assert cooldown.last_alert_side is None

    def test_recent_signal_blocks(self):
        """A signal two bars from the end is still cooling down."""
        signals = [Signal.NONE] * 10
        signals[-2] = Signal.LONG
        cooldown = resolve_cooldown(signals, required_bars=3)

        assert cooldown.bars_since_signal == 1
        assert cooldown.ok is False
        assert cooldown.last_alert_side == Signal.LONG

    def test_older_signal_clears(self):
        """A signal four bars from the end has cooled down."""
        signals = [Signal.NONE] * 10
        signals[-4] = Signal.SHORT
        cooldown = resolve_cooldown(signals, required_bars=3)

        assert cooldown.bars_since_signal == 3
        assert cooldown.ok is True

    def test_latest_signal_wins(self):
        signals = [Signal.LONG, Signal.NONE, Signal.SHORT, Signal.NONE]
        cooldown = resolve_cooldown(signals, required_bars=3)

        assert cooldown.last_alert_side == Signal.SHORT
        assert cooldown.bars_since_signal == 1


class TestGatingAndStage:
    """Tests for gating and stage."""

    def test_long_gate_open(self):
        gating = resolve_gating(Direction.BULLISH, Direction.BULLISH, Bias.NEUTRAL)

        assert gating.long.timing is True
        assert gating.long.blockers == []
        assert gating.short.timing is False
        assert gating.short.blockers == ["trend", "momentum", "bias"]

    def test_blockers_listed(self):
        gating = resolve_gating(Direction.BULLISH, Direction.NEUTRAL, Bias.BEAR)

        assert gating.long.timing is False
        assert gating.long.blockers == ["momentum", "bias"]

    def test_stage_priority(self):
        assert resolve_stage(Signal.LONG, False, False, False) == Stage.TRIGGERED
        assert resolve_stage(Signal.NONE, False, True, False) == Stage.COOLDOWN
        assert resolve_stage(Signal.NONE, True, False, False) == Stage.GATED
        assert resolve_stage(Signal.NONE, True, False, True) == Stage.READY


class TestFiltersAndRisk:
    """Tests for filters and ATR-based risk levels."""

    def test_risk_levels(self):
        risk = resolve_risk(100.0, 2.0)

        assert risk.sl_long == pytest.approx(98.0)
        assert risk.t1_long == pytest.approx(102.0)
        assert risk.t2_long == pytest.approx(104.0)
        assert risk.sl_short == pytest.approx(102.0)
        assert risk.t1_short == pytest.approx(98.0)
        assert risk.t2_short == pytest.approx(96.0)

    def test_risk_atr_clamped_to_price(self):
        risk = resolve_risk(100.0, 150.0)

        assert risk.atr == 150.0
        assert risk.sl_long == pytest.approx(0.0)

    def test_risk_missing(self):
        risk = resolve_risk(None, 2.0)
        assert risk.sl_long is None

    @pytest.mark.parametrize("price, atr_value", [(float("nan"), 2.0), (100.0, float("nan")), (100.0, float("inf"))])
    def test_risk_non_finite(self, price, atr_value):
        risk = resolve_risk(price, atr_value)

        assert risk.atr is None
        assert risk.sl_long is None
        assert risk.t2_short is None

    def test_filters(self):
        filters = resolve_filters(101.0, 100.0, 1.0, Bias.BULL)

        assert filters.atr_pct == pytest.approx(100.0 / 101.0)
        assert filters.atr_status == "ok"
        assert filters.dist_pct_to_ma200 == pytest.approx(1.0)
        assert filters.ma_distance_status == "ok"
        assert filters.ma_side == "above"
        assert filters.ma_long_ok is True
        assert filters.ma_short_ok is False

    def test_status_thresholds(self):
        assert resolve_atr_status(None) == "missing"
        assert resolve_atr_status(0.4) == "too-low"
        assert resolve_atr_status(11.0) == "too-high"
        assert resolve_ma_distance_status(0.1) == "too-close"
        assert resolve_ma_distance_status(-0.5) == "ok"
