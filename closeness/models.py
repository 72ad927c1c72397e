from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import pandas as pd

from .statistics import compute_returns


@dataclass(frozen=True)
class PriceSeries:
    """Prices of one ticker, ordered oldest to newest."""

    ticker: str
    prices: Tuple[float, ...]
    dates: Tuple[pd.Timestamp, ...] = ()

    def __len__(self) -> int:
        return len(self.prices)


@dataclass(frozen=True)
class Instrument:
    """A ticker with its prices and the returns derived from them.

    Returns are always derived from ``series`` in ``__post_init__``.
    """

    ticker: str
    series: PriceSeries
    return_mode: str = "log"
    returns: Tuple[float, ...] = field(init=False)

    def __post_init__(self) -> None:
        if self.ticker != self.series.ticker:
            raise ValueError("ticker must match the price series ticker")
        returns = tuple(compute_returns(self.series.prices, mode=self.return_mode))
        object.__setattr__(self, "returns", returns)

    @classmethod
    def from_prices(
        cls,
        ticker: str,
        prices: Sequence,
        dates: Optional[Sequence] = None,
        mode: str = "log",
    ) -> "Instrument":
        price_tuple = tuple(prices)
        date_tuple = tuple(pd.Timestamp(value) for value in dates) if dates is not None else ()
        if date_tuple and len(date_tuple) != len(price_tuple):
            raise ValueError("dates and prices must have the same length")
        series = PriceSeries(ticker=ticker, prices=price_tuple, dates=date_tuple)
        return cls(ticker=ticker, series=series, return_mode=mode)

    @classmethod
    def from_frame(cls, ticker: str, df: pd.DataFrame, mode: str = "log") -> "Instrument":
        """Build from a loader DataFrame with ``date`` and ``close`` columns."""
        return cls.from_prices(
            ticker,
            df["close"].astype(float).tolist(),
            dates=df["date"].tolist(),
            mode=mode,
        )

    @property
    def prices(self) -> Tuple[float, ...]:
        return self.series.prices

    @property
    def dates(self) -> Tuple[pd.Timestamp, ...]:
        return self.series.dates
