"""Tests for probability vectors and the indicator-bias mapper."""

import math

import pytest

from heatmap_core.bias import (
    IndicatorReadings,
    build_bias_vector,
    macd_z,
    stoch_cross_probability,
    structure_alignment,
)
from heatmap_core.vectors import (
    STATES,
    clamp,
    confidence,
    dominant_state,
    entropy,
    normalize_vector,
    one_hot,
    uniform_vector,
)


def _make_readings(**overrides) -> IndicatorReadings:
    return IndicatorReadings(**overrides)


class TestVectors:
    """Tests for vector helpers."""

    def test_state_order(self):
        assert STATES == ("Down", "Base", "Reversal", "Up")

    def test_normalize_clamps_negatives(self):
        result = normalize_vector({"Down": -1.0, "Base": 1.0, "Reversal": 1.0, "Up": 2.0})

        assert result["Down"] == 0.0
        assert result["Up"] == pytest.approx(0.5)
        assert sum(result.values()) == pytest.approx(1.0)

    def test_normalize_degenerate_is_uniform(self):
        assert normalize_vector({}) == uniform_vector()
        assert normalize_vector({"Up": float("nan"), "Down": -2.0}) == uniform_vector()
        assert normalize_vector({"Up": float("inf")}) == uniform_vector()

    def test_dominant_tie_breaks_in_state_order(self):
        assert dominant_state(uniform_vector()) == "Down"
        assert dominant_state({"Down": 0.1, "Base": 0.4, "Reversal": 0.4, "Up": 0.1}) == "Base"

    def test_confidence_extremes(self):
        assert confidence(one_hot("Up")) == pytest.approx(1.0)
        assert confidence(uniform_vector()) == pytest.approx(0.0, abs=1e-12)

    def test_entropy(self):
        assert entropy(one_hot("Base")) == 0.0
        assert entropy(uniform_vector()) == pytest.approx(math.log(4))

    def test_clamp_nan_maps_to_low(self):
        assert clamp(float("nan"), -1.0, 1.0) == -1.0
        assert clamp(5.0, -1.0, 1.0) == 1.0


class TestBiasHelpers:
    """Tests for bias mapper helpers."""

    def test_macd_z(self):
        assert macd_z(None, 1.0) == 0.0
        assert macd_z(2.0, 0.5) == pytest.approx(4.0)
        # Degenerate std falls back to the raw histogram
        assert macd_z(2.0, 1e-9) == pytest.approx(2.0)
        assert macd_z(2.0, None) == pytest.approx(2.0)

    def test_structure_alignment(self):
        assert structure_alignment(_make_readings(ema_fast=3.0, ema_slow=2.0, ma_long=1.0)) == 1
        assert structure_alignment(_make_readings(ema_fast=1.0, ema_slow=2.0, ma_long=3.0)) == -1
        assert structure_alignment(_make_readings(ema_fast=2.0, ema_slow=3.0, ma_long=1.0)) == 0
        assert structure_alignment(_make_readings(ema_fast=3.0, ema_slow=2.0)) == 0

    def test_stoch_cross_probability(self):
        assert stoch_cross_probability(None, 0.0) == 0.0
        assert stoch_cross_probability(50.0, 0.0) == pytest.approx(1.0)
        assert stoch_cross_probability(100.0, 0.0) == pytest.approx(0.0)
        assert stoch_cross_probability(50.0, 1.0) == pytest.approx(0.5)


class TestBiasVector:
    """Tests for build_bias_vector."""

    def test_no_readings_is_uniform(self):
        assert build_bias_vector(IndicatorReadings()) == pytest.approx(uniform_vector())

    def test_bullish_readings_favour_up(self):
        vector = build_bias_vector(
            _make_readings(
                rsi=70.0,
                stoch_k=85.0,
                macd_histogram=2.0,
                macd_histogram_std=1.0,
                adx=35.0,
                ema_fast=110.0,
                ema_slow=105.0,
                ma_long=100.0,
                ema_diff=0.05,
                signal_strength=3.0,
            )
        )

        assert sum(vector.values()) == pytest.approx(1.0)
        assert dominant_state(vector) == "Up"
        assert vector["Up"] > vector["Down"]

    def test_bearish_readings_favour_down(self):
        vector = build_bias_vector(
            _make_readings(
                rsi=28.0,
                stoch_k=10.0,
                macd_histogram=-2.0,
                macd_histogram_std=1.0,
                adx=35.0,
                ema_fast=90.0,
                ema_slow=95.0,
                ma_long=100.0,
                ema_diff=-0.05,
                signal_strength=-3.0,
            )
        )

        assert dominant_state(vector) == "Down"

    def test_weak_trend_lifts_base(self):
        trending = build_bias_vector(_make_readings(adx=40.0))
        ranging = build_bias_vector(_make_readings(adx=5.0))

        assert ranging["Base"] > trending["Base"]

    def test_zero_signal_strength_nudges_base(self):
        plain = build_bias_vector(_make_readings(rsi=50.0))
        nudged = build_bias_vector(_make_readings(rsi=50.0, signal_strength=0.0))

        assert nudged["Base"] > plain["Base"]

    def test_flat_histogram_lifts_reversal(self):
        flat = build_bias_vector(_make_readings(macd_histogram=0.0))
        active = build_bias_vector(_make_readings(macd_histogram=0.5, macd_histogram_std=1.0))

        assert flat["Reversal"] > active["Reversal"]
