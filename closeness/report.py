"""Human-readable wording for correlation and ranking results."""

import math
from typing import Dict, Iterable, Optional

import pandas as pd

from .company_info import CompanyInfo
from .ranking import RankedResult

# (lower bound in percent, wording), checked top to bottom
CORRELATION_WORDING = (
    (80, "very strongly moves together"),
    (60, "moves fairly often in the same direction"),
    (30, "moves sometimes in the same direction"),
    (0, "moves mostly independently"),
    (-30, "moves mostly independently or slightly opposite"),
    (-60, "moves fairly often in the opposite direction"),
)
CORRELATION_WORDING_FLOOR = "moves very strongly in the opposite direction"

RESULT_COLUMNS = ["ticker", "industry", "name", "pearson", "cointegration", "observations"]


def describe_correlation(corr: float) -> str:
    """Return e.g. ``"85% → very strongly moves together"``."""
    percent = round(corr * 100)
    for lower_bound, wording in CORRELATION_WORDING:
        if percent >= lower_bound:
            return f"{percent}% → {wording}"
    return f"{percent}% → {CORRELATION_WORDING_FLOOR}"


def format_result_line(
    ticker: str,
    info: Optional[CompanyInfo],
    correlation: float,
    similarity: Optional[float] = None,
) -> str:
    name = "N/A Name"
    industry = "N/A Industry"
    summary = "N/A Description"

    pearson_text = "N/A" if math.isnan(correlation) else f"{correlation:.4f}"
    similarity_text = "N/A" if similarity is None else f"{similarity * 100:.1f}%"

    if info is not None:
        industry = info.industry or industry
        name = info.name or name
        summary = info.summary or summary

    return (
        f"{ticker} ({industry}) - {name} | Pearson: {pearson_text} "
        f"| Cointegration: {similarity_text} | {summary}"
    )


def results_to_frame(
    results: Iterable[RankedResult],
    infos: Optional[Dict[str, CompanyInfo]] = None,
) -> pd.DataFrame:
    """Tabulate ranked results, one row per ticker, in ranking order."""
    infos = infos or {}
    rows = []
    for result in results:
        info = infos.get(result.ticker.upper())
        rows.append(
            {
                "ticker": result.ticker,
                "industry": info.industry if info else None,
                "name": info.name if info else None,
                "pearson": result.correlation,
                "cointegration": result.similarity,
                "observations": result.observations,
            }
        )
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)
