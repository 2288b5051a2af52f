"""Signal configuration loaded from signals.yaml.

Supports:
- Timeframe selection (subset of the built-in timeframes)
- Fusion weights, including the optional news and volatility terms
- Quantum-walk overrides (steps, entanglement)
- No YAML file = every timeframe with default weights
"""

import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

from heatmap_core.fusion import FusionWeights
from heatmap_core.models.config import COOLDOWN_BARS, TIMEFRAME_CONFIGS, TimeframeConfig, get_timeframe_config
from heatmap_core.quantum import DEFAULT_QUANTUM_CONFIG, EntanglementConfig, QuantumConfig

logger = logging.getLogger(__name__)


class QuantumEntry(BaseModel):
    """Quantum-walk overrides in the YAML config."""

    steps: int = DEFAULT_QUANTUM_CONFIG.steps
    entanglement: bool = False
    entanglement_strength: float = 0.5

    def to_quantum_config(self) -> QuantumConfig:
        return replace(
            DEFAULT_QUANTUM_CONFIG,
            steps=self.steps,
            entanglement=EntanglementConfig(
                enabled=self.entanglement,
                strength=self.entanglement_strength,
            ),
        )


class SignalConfig(BaseModel):
    """Top-level signals.yaml configuration."""

    timeframes: list[str] = [tf.value for tf in TIMEFRAME_CONFIGS]
    cooldown_bars: int = COOLDOWN_BARS
    fusion: FusionWeights = FusionWeights()
    quantum: QuantumEntry = QuantumEntry()
    # Name of an environment variable holding a news sentiment score in [-1, 1]
    news_sentiment_env: str = ""

    @model_validator(mode="after")
    def _validate(self):
        if not self.timeframes:
            raise ValueError("timeframes must list at least one timeframe")
        unknown = [tf for tf in self.timeframes if get_timeframe_config(tf) is None]
        if unknown:
            known = [tf.value for tf in TIMEFRAME_CONFIGS]
            raise ValueError(f"unknown timeframes {unknown}, expected a subset of {known}")
        if self.cooldown_bars < 0:
            raise ValueError(f"cooldown_bars must be >= 0, got {self.cooldown_bars}")
        if self.quantum.steps < 0:
            raise ValueError(f"quantum.steps must be >= 0, got {self.quantum.steps}")
        return self

    def get_timeframe_configs(self) -> list[TimeframeConfig]:
        """Selected timeframes in ascending interval order."""
        configs = [get_timeframe_config(tf) for tf in set(self.timeframes)]
        return sorted((c for c in configs if c is not None), key=lambda c: c.minutes)

    def get_quantum_config(self) -> QuantumConfig:
        return self.quantum.to_quantum_config()

    @property
    def news_sentiment(self) -> Optional[float]:
        if not self.news_sentiment_env:
            return None
        raw = os.environ.get(self.news_sentiment_env, "")
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning("Ignoring non-numeric news sentiment %s=%r", self.news_sentiment_env, raw)
            return None


_DEFAULT_PATH = Path(__file__).parent.parent / "signals.yaml"


def load_signal_config(path: Path | None = None) -> SignalConfig:
    """Load signal config from YAML file.

    Falls back to defaults (all timeframes, default weights) if the file
    doesn't exist.
    """
    config_path = path or _DEFAULT_PATH

    # Load .env so news_sentiment_env can be resolved from it
    env_path = config_path.parent / ".env"
    load_dotenv(env_path, override=False)

    if not config_path.exists():
        logger.info("No signals.yaml found at %s, using defaults", config_path)
        return SignalConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    config = SignalConfig(**raw)
    logger.info(
        "Loaded signal config: %d timeframes, fusion=%s/%s/%s, quantum steps=%d",
        len(config.timeframes),
        config.fusion.markov,
        config.fusion.quantum,
        config.fusion.bias,
        config.quantum.steps,
    )
    return config
