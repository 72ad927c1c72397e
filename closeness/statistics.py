"""Return, correlation and residual statistics used to compare price series."""

import logging
import math
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

RETURN_MODES = ("log", "simple")

# similarity() at or above this value counts as "moving together"
SIMILARITY_THRESHOLD = 0.5
# similarity() below this value counts as weak / opposite
OPPOSITE_THRESHOLD = 0.2


class RegressionResult(NamedTuple):
    """Fit of ``y ~ alpha + beta * x``."""

    alpha: float
    beta: float
    residuals: List[float]


def compute_returns(prices: Sequence, mode: str = "log") -> List[float]:
    """Compute period-over-period returns from an oldest-to-newest price sequence.

    Args:
        prices: Prices ordered oldest to newest. ``Decimal``, ``int`` and
            ``float`` values are accepted.
        mode: ``"log"`` for ``ln(p[i] / p[i-1])`` or ``"simple"`` for
            ``(p[i] - p[i-1]) / p[i-1]``.

    Returns:
        List of returns. A transition whose previous price is zero emits
        nothing, so the result can be shorter than ``len(prices) - 1``.

    Raises:
        ValueError: If ``mode`` is not one of ``RETURN_MODES``.
    """
    if mode not in RETURN_MODES:
        raise ValueError(f"mode must be one of {RETURN_MODES}")

    values = np.asarray([float(price) for price in prices], dtype=float)
    if len(values) < 2:
        return []

    previous = values[:-1]
    current = values[1:]
    keep = previous != 0
    previous = previous[keep]
    current = current[keep]

    if mode == "log":
        with np.errstate(divide="ignore", invalid="ignore"):
            returns = np.log(current / previous)
    else:
        returns = (current - previous) / previous

    non_finite = int(np.count_nonzero(~np.isfinite(returns)))
    if non_finite:
        logger.warning("%s non-finite %s return(s) from zero or invalid prices", non_finite, mode)
    return [float(value) for value in returns]


def align(a: Sequence[float], b: Sequence[float]) -> Tuple[List[float], List[float]]:
    """Truncate two series to their shared most recent window.

    Both outputs are empty when fewer than two observations overlap.
    """
    n = min(len(a), len(b))
    if n < 2:
        return [], []
    x = list(a)[len(a) - n :]
    y = list(b)[len(b) - n :]
    return x, y


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation of two equal-length series.

    Returns 0 for empty or mismatched inputs and when either series is
    constant. The result is not clamped, so rounding can put it a hair
    outside [-1, 1].
    """
    if len(x) == 0 or len(y) == 0 or len(x) != len(y):
        return 0.0

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    dx = xs - xs.mean()
    dy = ys - ys.mean()

    sum_xy = float((dx * dy).sum())
    sum_x2 = float((dx * dx).sum())
    sum_y2 = float((dy * dy).sum())

    if sum_x2 == 0 or sum_y2 == 0:
        return 0.0

    return sum_xy / math.sqrt(sum_x2 * sum_y2)


def fit_residuals(x: Sequence[float], y: Sequence[float]) -> RegressionResult:
    """Ordinary least squares of y on x with an intercept.

    Returns ``(0, 0, [])`` when the inputs differ in length, hold fewer
    than two observations, or x is constant. A constant x is "no fit",
    which is distinct from a valid zero-slope fit.
    """
    if len(x) != len(y) or len(x) < 2:
        return RegressionResult(0.0, 0.0, [])

    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    mean_x = xs.mean()
    mean_y = ys.mean()

    numerator = float(((xs - mean_x) * (ys - mean_y)).sum())
    denominator = float(((xs - mean_x) * (xs - mean_x)).sum())
    if denominator == 0:
        return RegressionResult(0.0, 0.0, [])

    beta = numerator / denominator
    alpha = float(mean_y) - beta * float(mean_x)
    residuals = ys - (alpha + beta * xs)
    return RegressionResult(alpha, beta, [float(value) for value in residuals])


def similarity(x: Sequence[float], y: Sequence[float]) -> float:
    """Cointegration-like closeness score in [0, 1].

    This is a heuristic, not a cointegration test: no unit-root test is run.
    The score is ``1 / (1 + mean(residual ** 2))`` of the OLS fit of y on x,
    so it only carries a relative-ranking meaning.

    - fewer than two residuals (no fit) -> 0.0
    - residual variance NaN or <= 0 -> 1.0
    """
    _, _, residuals = fit_residuals(x, y)
    if len(residuals) < 2:
        return 0.0

    variance = float(np.mean(np.square(residuals)))
    if np.isnan(variance) or variance <= 0:
        return 1.0

    score = 1.0 / (1.0 + variance)
    return max(0.0, min(1.0, score))


def is_similar(x: Sequence[float], y: Sequence[float]) -> bool:
    return similarity(x, y) >= SIMILARITY_THRESHOLD
