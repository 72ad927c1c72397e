"""Rank a pool of instruments against a target by correlation or similarity."""

from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import Callable, Iterable, List, Optional, Sequence

from .config import DEFAULT_TOP_K
from .models import Instrument
from .statistics import (
    OPPOSITE_THRESHOLD,
    SIMILARITY_THRESHOLD,
    align,
    pearson,
    similarity,
)

logger = logging.getLogger(__name__)

OPPOSITE_MODES = ("similarity", "correlation")


class RankingPolicy(Enum):
    TOP_CORRELATION = "top_correlation"
    TOP_SIMILARITY = "top_similarity"
    MOST_OPPOSITE = "most_opposite"


@dataclass(frozen=True)
class RankingConfig:
    """Thresholds and sizes for ranking."""

    top_k: int = DEFAULT_TOP_K
    min_similarity: float = SIMILARITY_THRESHOLD
    max_opposite_similarity: float = OPPOSITE_THRESHOLD
    max_opposite_correlation: float = 0.0
    opposite_mode: str = "similarity"
    drop_degenerate: bool = False


@dataclass(frozen=True)
class RankedResult:
    ticker: str
    correlation: float
    similarity: float
    observations: int


@dataclass(frozen=True)
class PairComparison:
    ticker_a: str
    ticker_b: str
    correlation: float
    similarity: float
    is_similar: bool
    observations: int


def find_instrument(instruments: Iterable[Instrument], ticker: str) -> Optional[Instrument]:
    """Case-insensitive lookup by ticker. Returns None when absent."""
    wanted = str(ticker).strip().upper()
    for instrument in instruments:
        if instrument.ticker.upper() == wanted:
            return instrument
    return None


def _score_pair(a: Instrument, b: Instrument) -> RankedResult:
    x, y = align(a.returns, b.returns)
    return RankedResult(
        ticker=b.ticker,
        correlation=pearson(x, y),
        similarity=similarity(x, y),
        observations=len(x),
    )


def score_candidates(target: Instrument, pool: Sequence[Instrument]) -> List[RankedResult]:
    """Score every pool member against the target, keeping pool order.

    The target itself (matched by ticker) is never scored.
    """
    results: List[RankedResult] = []
    for candidate in pool:
        if candidate.ticker == target.ticker:
            continue
        results.append(_score_pair(target, candidate))
    return results


def filter_results(
    results: Iterable[RankedResult],
    predicate: Callable[[RankedResult], bool],
) -> List[RankedResult]:
    return [result for result in results if predicate(result)]


def sort_results(
    results: Iterable[RankedResult],
    key: Callable[[RankedResult], float],
    descending: bool = True,
) -> List[RankedResult]:
    """Stable sort: equal scores keep their incoming order. NaN scores go last."""

    def _sort_key(result: RankedResult) -> float:
        value = key(result)
        if math.isnan(value):
            return -math.inf if descending else math.inf
        return value

    return sorted(results, key=_sort_key, reverse=descending)


def take_top(results: Sequence[RankedResult], k: int) -> List[RankedResult]:
    if k < 0:
        raise ValueError("k must be >= 0")
    return list(results[:k])


def _is_degenerate(result: RankedResult) -> bool:
    return math.isnan(result.correlation) or result.observations < 2


def _scored(
    target: Instrument,
    pool: Sequence[Instrument],
    drop_degenerate: bool,
) -> List[RankedResult]:
    results = score_candidates(target, pool)
    if drop_degenerate:
        results = filter_results(results, lambda result: not _is_degenerate(result))
    return results


def rank_by_correlation(
    target: Instrument,
    pool: Sequence[Instrument],
    top_k: int = DEFAULT_TOP_K,
    drop_degenerate: bool = False,
) -> List[RankedResult]:
    results = _scored(target, pool, drop_degenerate)
    ordered = sort_results(results, key=lambda result: result.correlation, descending=True)
    return take_top(ordered, top_k)


def rank_by_similarity(
    target: Instrument,
    pool: Sequence[Instrument],
    top_k: int = DEFAULT_TOP_K,
    min_similarity: float = SIMILARITY_THRESHOLD,
    drop_degenerate: bool = False,
) -> List[RankedResult]:
    results = _scored(target, pool, drop_degenerate)
    results = filter_results(results, lambda result: result.similarity >= min_similarity)
    ordered = sort_results(results, key=lambda result: result.similarity, descending=True)
    return take_top(ordered, top_k)


def rank_most_opposite(
    target: Instrument,
    pool: Sequence[Instrument],
    top_k: int = DEFAULT_TOP_K,
    mode: str = "similarity",
    max_similarity: float = OPPOSITE_THRESHOLD,
    max_correlation: float = 0.0,
    drop_degenerate: bool = False,
) -> List[RankedResult]:
    """Instruments that move least like the target, lowest score first.

    ``mode="similarity"`` keeps scores below ``max_similarity``;
    ``mode="correlation"`` keeps correlations below ``max_correlation``.
    """
    if mode not in OPPOSITE_MODES:
        raise ValueError(f"mode must be one of {OPPOSITE_MODES}")

    results = _scored(target, pool, drop_degenerate)
    if mode == "similarity":
        results = filter_results(results, lambda result: result.similarity < max_similarity)
        ordered = sort_results(results, key=lambda result: result.similarity, descending=False)
    else:
        results = filter_results(results, lambda result: result.correlation < max_correlation)
        ordered = sort_results(results, key=lambda result: result.correlation, descending=False)
    return take_top(ordered, top_k)


def rank(
    target: Instrument,
    pool: Sequence[Instrument],
    policy: RankingPolicy,
    config: Optional[RankingConfig] = None,
) -> List[RankedResult]:
    """Rank ``pool`` against ``target`` under ``policy``.

    An empty list is a valid answer when no candidate clears the threshold.
    """
    config = config or RankingConfig()
    policy = RankingPolicy(policy)

    if policy is RankingPolicy.TOP_CORRELATION:
        ranked = rank_by_correlation(
            target,
            pool,
            top_k=config.top_k,
            drop_degenerate=config.drop_degenerate,
        )
    elif policy is RankingPolicy.TOP_SIMILARITY:
        ranked = rank_by_similarity(
            target,
            pool,
            top_k=config.top_k,
            min_similarity=config.min_similarity,
            drop_degenerate=config.drop_degenerate,
        )
    else:
        ranked = rank_most_opposite(
            target,
            pool,
            top_k=config.top_k,
            mode=config.opposite_mode,
            max_similarity=config.max_opposite_similarity,
            max_correlation=config.max_opposite_correlation,
            drop_degenerate=config.drop_degenerate,
        )

    logger.debug(
        "%s ranking for %s: %s of %s candidates",
        policy.value,
        target.ticker,
        len(ranked),
        len(pool),
    )
    return ranked


def compare_instruments(a: Instrument, b: Instrument) -> PairComparison:
    """Compare two instruments directly on their aligned returns."""
    x, y = align(a.returns, b.returns)
    score = similarity(x, y)
    return PairComparison(
        ticker_a=a.ticker,
        ticker_b=b.ticker,
        correlation=pearson(x, y),
        similarity=score,
        is_similar=score >= SIMILARITY_THRESHOLD,
        observations=len(x),
    )
