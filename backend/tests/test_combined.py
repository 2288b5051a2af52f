"""Tests for the combined signal and the multi-timeframe model."""

import math

import pytest

from heatmap_core.combined import (
    classify_signal_strength,
    compute_trend_bias,
    compute_trend_strength,
    get_combined_signal,
    get_multi_timeframe_signal,
    has_consecutive_timeframes,
    order_timeframes,
    qualifies_for_trade,
    resolve_combined_bias,
    resolve_signal_label,
    resolve_timeframe_weight,
    run_multi_timeframe_model,
    to_signal_snapshot,
)
from heatmap_core.models import Cooldown, Direction, Signal, Stage

from helpers import make_snapshot


class TestCombinedSignal:
    """Tests for get_combined_signal."""

    def test_full_bullish_without_prior(self):
        combined = get_combined_signal(make_snapshot(direction=1, prior=0.0))
        breakdown = combined.breakdown

        assert breakdown.bias == Direction.BULLISH
        assert breakdown.momentum == "StrongBullish"
        assert breakdown.trend_strength == "Strong"
        assert breakdown.adx_direction == "ConfirmBull"
        assert breakdown.adx_is_rising is True
        assert breakdown.trend_score == 1.0
        assert breakdown.signal_strength_raw == 3
        # Raw score keeps 65% weight without a prior
        assert breakdown.signal_strength == pytest.approx(1.95)
        assert breakdown.label == "BUY_FORMING"
        assert combined.direction == Direction.BULLISH
        assert combined.strength == 65

    def test_prior_pushes_to_strong(self):
        combined = get_combined_signal(make_snapshot(direction=1, prior=1.0))

        assert combined.breakdown.signal_strength == pytest.approx(3.0)
        assert combined.breakdown.label == "STRONG_BUY"
        assert combined.strength == 100

    def test_full_bearish(self):
        combined = get_combined_signal(make_snapshot(direction=-1, prior=-1.0))

        assert combined.breakdown.signal_strength_raw == -3
        assert combined.breakdown.signal_strength == pytest.approx(-3.0)
        assert combined.breakdown.label == "STRONG_SELL"
        assert combined.direction == Direction.BEARISH

    def test_prior_is_clamped(self):
        combined = get_combined_signal(make_snapshot(direction=0, prior=5.0))

        assert combined.breakdown.markov.prior_score == 1.0
        assert combined.breakdown.signal_strength == pytest.approx(1.05)

    def test_empty_snapshot_is_neutral(self):
        combined = get_combined_signal(make_snapshot(direction=0))

        assert combined.direction == Direction.NEUTRAL
        assert combined.strength == 0
        assert combined.breakdown.bias == Direction.NEUTRAL
        assert combined.breakdown.momentum == "Weak"
        assert combined.breakdown.trend_strength == "Weak"
        assert combined.breakdown.label == "NEUTRAL"


class TestCombinedHelpers:
    """Tests for the combined-signal building blocks."""

    def test_trend_bias_macd_leads_when_emas_mixed(self):
        bias, score = compute_trend_bias(105.0, 110.0, 100.0, 2.0, 1.0, 1.0)
        assert bias == Direction.BULLISH
        assert score == pytest.approx(0.6)

        # Histogram-only lean is too weak on its own
        bias, score = compute_trend_bias(105.0, 110.0, 100.0, -1.0, -2.0, 1.0)
        assert bias == Direction.NEUTRAL
        assert score == pytest.approx(0.15)

    def test_trend_strength_thresholds(self):
        assert compute_trend_strength(None, 0.0) == "Weak"
        assert compute_trend_strength(26.0, 0.0) == "Strong"
        assert compute_trend_strength(22.0, 0.0) == "Forming"
        assert compute_trend_strength(15.0, 0.0) == "Weak"
        # Bullish prior lowers the bar
        assert compute_trend_strength(22.0, 1.0) == "Strong"
        assert compute_trend_strength(18.0, 1.0) == "Forming"
        # Bearish prior does not
        assert compute_trend_strength(22.0, -1.0) == "Forming"

    def test_classify_forming(self):
        assert classify_signal_strength(Direction.BULLISH, "Weak", "Forming", "NoConfirm", True) == 2
        assert classify_signal_strength(Direction.BEARISH, "Weak", "Forming", "NoConfirm", True) == -2
        assert classify_signal_strength(Direction.BULLISH, "Weak", "Forming", "NoConfirm", False) == 0
        assert classify_signal_strength(Direction.BULLISH, "Weak", "Weak", "ConfirmBull", False) == 1
        assert classify_signal_strength(Direction.NEUTRAL, "Weak", "Strong", "NoConfirm", True) == 0

    def test_signal_labels(self):
        assert resolve_signal_label(2.5) == "STRONG_BUY"
        assert resolve_signal_label(1.5) == "BUY_FORMING"
        assert resolve_signal_label(0.5) == "BUY_WEAK"
        assert resolve_signal_label(0.49) == "NEUTRAL"
        assert resolve_signal_label(-0.49) == "NEUTRAL"
        assert resolve_signal_label(-0.5) == "SELL_WEAK"
        assert resolve_signal_label(-1.5) == "SELL_FORMING"
        assert resolve_signal_label(-2.5) == "STRONG_SELL"


class TestSignalSnapshot:
    """Tests for the dashboard view of a timeframe."""

    def test_triggered_long(self):
        view = to_signal_snapshot(make_snapshot(direction=1, signal=Signal.LONG))

        assert view.side == Direction.BULLISH
        assert view.stage == Stage.TRIGGERED
        assert view.trend == Direction.BULLISH
        assert view.momentum == Direction.BULLISH
        assert 0 <= view.confluence_score <= 100
        assert view.strength in ("Strong", "Medium", "Weak")
        assert view.timeframe_label == "60m"

    def test_cooldown_stage(self):
        snapshot = make_snapshot(direction=1, cooldown=Cooldown(bars_since_signal=1, ok=False))
        assert to_signal_snapshot(snapshot).stage == Stage.COOLDOWN

    def test_gated_when_gate_closed(self):
        """Bullish side but the long timing gate is shut."""
        assert to_signal_snapshot(make_snapshot(direction=1)).stage == Stage.GATED

    def test_neutral_has_no_side(self):
        view = to_signal_snapshot(make_snapshot(direction=0))

        assert view.side is None
        assert view.confluence_score is None
        assert view.strength is None
        assert view.momentum == Direction.NEUTRAL

    def test_json_alias(self):
        data = to_signal_snapshot(make_snapshot(direction=1)).to_json_dict()

        assert data["slopeMa200"] == 0.1
        assert data["combined"]["breakdown"]["signalStrengthRaw"] == 3


class TestMultiTimeframe:
    """Tests for the weighted multi-timeframe signal."""

    def test_weights(self):
        assert resolve_timeframe_weight("5") == 0.5
        assert resolve_timeframe_weight("360") == 2.5
        assert resolve_timeframe_weight("60.0") == 1.3
        assert resolve_timeframe_weight("D") == 1.0

    def test_empty(self):
        assert get_multi_timeframe_signal([]) is None

    def test_weighted_score(self):
        views = [
            to_signal_snapshot(make_snapshot("360", direction=1, prior=1.0)),
            to_signal_snapshot(make_snapshot("5", direction=1, prior=1.0)),
        ]
        result = get_multi_timeframe_signal(views)

        # 3 * 2.5 + 3 * 0.5
        assert result.combined_score == pytest.approx(9.0)
        assert result.normalized_score == pytest.approx(3.0)
        assert result.combined_bias.dir == Direction.BULLISH
        assert result.combined_bias.strength == "Strong"
        assert result.direction == Direction.BULLISH
        assert result.strength == round(9.0 / (3 * 9.5) * 100)
        assert [c.timeframe for c in result.contributions] == ["5", "360"]

    def test_combined_bias_thresholds(self):
        assert resolve_combined_bias(9.0).strength == "Strong"
        assert resolve_combined_bias(5.0).strength == "Medium"
        assert resolve_combined_bias(2.0).strength == "Weak"
        assert resolve_combined_bias(1.0).dir == Direction.NEUTRAL
        assert resolve_combined_bias(1.0).strength == "Sideways"
        assert resolve_combined_bias(-9.0).dir == Direction.BEARISH
        assert resolve_combined_bias(-2.0).strength == "Weak"


class TestTradeQualification:
    """Tests for qualification and consecutive-timeframe logic."""

    def test_qualifies_for_trade(self):
        assert qualifies_for_trade(3.0, -0.3) is True
        assert qualifies_for_trade(3.0, -0.5) is False
        assert qualifies_for_trade(2.0, 0.0) is True
        assert qualifies_for_trade(2.0, -0.3) is False
        assert qualifies_for_trade(2.0, 0.3) is True
        assert qualifies_for_trade(1.0, 0.3) is True
        assert qualifies_for_trade(1.0, 0.1) is False
        assert qualifies_for_trade(-1.0, -0.3) is True
        assert qualifies_for_trade(0.3, 1.0) is False
        assert qualifies_for_trade(0.0, 1.0) is False
        assert qualifies_for_trade(math.nan, 1.0) is False

    def test_consecutive(self):
        order = ["5", "15", "30", "60", "120", "240", "360"]

        assert has_consecutive_timeframes(["5", "15", "30"], 3, order) is True
        assert has_consecutive_timeframes(["60", "120", "240"], 3, order) is True
        assert has_consecutive_timeframes(["5", "15", "60"], 3, order) is False
        assert has_consecutive_timeframes([], 3, order) is False
        assert has_consecutive_timeframes(["360"], 1, order) is True

    def test_order_timeframes(self):
        assert order_timeframes(["60", "5", "D", "15", "1H"]) == ["5", "15", "60", "1H", "D"]


class TestMultiTimeframeModel:
    """Tests for run_multi_timeframe_model."""

    def test_three_consecutive_emit(self):
        views = [
            to_signal_snapshot(make_snapshot(tf, direction=1, prior=0.6))
            for tf in ("60", "15", "30")
        ]
        summary = run_multi_timeframe_model(views)

        assert [row.timeframe for row in summary.trend_matrix] == ["15", "30", "60"]
        assert summary.qualified_timeframes == ["15", "30", "60"]
        assert summary.emit_trade_signal is True
        assert summary.combined_bias.dir == Direction.BULLISH

        row = summary.trend_matrix[0]
        assert row.rsi == 65.0
        assert row.prior == 0.6
        assert row.score_raw == 3.0
        assert row.score == pytest.approx(2.58)

    def test_gap_blocks_emit(self):
        views = [
            to_signal_snapshot(make_snapshot("15", direction=1, prior=0.6)),
            to_signal_snapshot(make_snapshot("30", direction=0)),
            to_signal_snapshot(make_snapshot("60", direction=1, prior=0.6)),
            to_signal_snapshot(make_snapshot("120", direction=1, prior=0.6)),
        ]
        summary = run_multi_timeframe_model(views)

        assert summary.qualified_timeframes == ["15", "60", "120"]
        assert summary.emit_trade_signal is False
