"""Candle (OHLCV) data model."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Candle(BaseModel):
    """One OHLCV bar. Times are epoch milliseconds."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    turnover: float = 0.0
    close_time: int
