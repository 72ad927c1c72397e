import math
import unittest
from decimal import Decimal

from closeness.statistics import (
    OPPOSITE_THRESHOLD,
    SIMILARITY_THRESHOLD,
    align,
    compute_returns,
    fit_residuals,
    is_similar,
    pearson,
    similarity,
)


class ComputeReturnsTests(unittest.TestCase):
    def test_log_returns_are_default(self):
        returns = compute_returns([100.0, 110.0, 99.0])

        self.assertEqual(len(returns), 2)
        self.assertAlmostEqual(returns[0], math.log(1.1))
        self.assertAlmostEqual(returns[1], math.log(0.9))

    def test_simple_returns(self):
        returns = compute_returns([100.0, 110.0, 99.0], mode="simple")

        self.assertAlmostEqual(returns[0], 0.1)
        self.assertAlmostEqual(returns[1], -0.1)

    def test_transition_from_zero_price_is_skipped(self):
        returns = compute_returns([100, 0, 50, 55], mode="simple")

        self.assertEqual(len(returns), 2)
        self.assertAlmostEqual(returns[0], -1.0)
        self.assertAlmostEqual(returns[1], 0.1)

    def test_log_return_to_zero_price_warns(self):
        with self.assertLogs("closeness.statistics", level="WARNING") as captured:
            returns = compute_returns([100.0, 0.0, 50.0])

        self.assertEqual(returns, [-math.inf])
        self.assertEqual(len(captured.records), 1)
        self.assertIn("1 non-finite log return", captured.output[0])

    def test_accepts_decimal_prices(self):
        returns = compute_returns([Decimal("10.00"), Decimal("12.50")], mode="simple")

        self.assertAlmostEqual(returns[0], 0.25)

    def test_short_input_yields_no_returns(self):
        self.assertEqual(compute_returns([]), [])
        self.assertEqual(compute_returns([42.0]), [])

    def test_same_prices_give_identical_returns(self):
        prices = [Decimal("101.3"), Decimal("99.87"), Decimal("104.2"), Decimal("103.01")]

        self.assertEqual(compute_returns(prices), compute_returns(list(prices)))

    def test_unknown_mode_raises(self):
        with self.assertRaises(ValueError):
            compute_returns([1.0, 2.0], mode="percent")


class AlignTests(unittest.TestCase):
    def test_keeps_trailing_common_window(self):
        x, y = align([1, 2, 3, 4], [10, 20, 30])

        self.assertEqual(x, [2, 3, 4])
        self.assertEqual(y, [10, 20, 30])

    def test_equal_lengths_are_unchanged(self):
        x, y = align([1.0, 2.0], [3.0, 4.0])

        self.assertEqual(x, [1.0, 2.0])
        self.assertEqual(y, [3.0, 4.0])

    def test_insufficient_overlap_returns_empty(self):
        self.assertEqual(align([1.0], [1.0, 2.0, 3.0]), ([], []))
        self.assertEqual(align([], [1.0, 2.0]), ([], []))


class PearsonTests(unittest.TestCase):
    def test_symmetric(self):
        x = [0.01, -0.02, 0.015, 0.003, -0.007]
        y = [0.02, -0.01, 0.01, -0.004, 0.001]

        self.assertEqual(pearson(x, y), pearson(y, x))

    def test_self_correlation_is_one(self):
        x = [0.01, -0.02, 0.015, 0.003, -0.007]

        self.assertAlmostEqual(pearson(x, x), 1.0, places=12)

    def test_perfect_negative_correlation(self):
        self.assertAlmostEqual(pearson([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]), -1.0, places=12)

    def test_constant_series_gives_zero(self):
        self.assertEqual(pearson([1, 1, 1, 1], [1, 2, 3, 4]), 0.0)
        self.assertEqual(pearson([1, 2, 3, 4], [5, 5, 5, 5]), 0.0)

    def test_empty_or_mismatched_gives_zero(self):
        self.assertEqual(pearson([], []), 0.0)
        self.assertEqual(pearson([1.0, 2.0], []), 0.0)
        self.assertEqual(pearson([1.0, 2.0, 3.0], [1.0, 2.0]), 0.0)


class FitResidualsTests(unittest.TestCase):
    def test_exact_linear_fit(self):
        alpha, beta, residuals = fit_residuals([1, 2, 3], [2, 4, 6])

        self.assertEqual(beta, 2.0)
        self.assertEqual(alpha, 0.0)
        self.assertEqual(residuals, [0.0, 0.0, 0.0])

    def test_intercept_and_residuals(self):
        result = fit_residuals([0.0, 1.0, 2.0, 3.0], [1.0, 3.0, 2.0, 4.0])

        self.assertAlmostEqual(result.beta, 0.8)
        self.assertAlmostEqual(result.alpha, 1.3)
        self.assertEqual(len(result.residuals), 4)
        self.assertAlmostEqual(sum(result.residuals), 0.0)

    def test_short_input_is_no_fit(self):
        self.assertEqual(fit_residuals([5.0], [7.0]), (0.0, 0.0, []))
        self.assertEqual(fit_residuals([], []), (0.0, 0.0, []))

    def test_mismatched_lengths_is_no_fit(self):
        self.assertEqual(fit_residuals([1.0, 2.0, 3.0], [1.0, 2.0]), (0.0, 0.0, []))

    def test_constant_x_is_no_fit(self):
        self.assertEqual(fit_residuals([3.0, 3.0, 3.0], [1.0, 2.0, 3.0]), (0.0, 0.0, []))

    def test_zero_slope_is_a_valid_fit(self):
        alpha, beta, residuals = fit_residuals([1.0, 2.0, 3.0], [5.0, 5.0, 5.0])

        self.assertEqual(beta, 0.0)
        self.assertEqual(alpha, 5.0)
        self.assertEqual(residuals, [0.0, 0.0, 0.0])


class SimilarityTests(unittest.TestCase):
    def test_perfect_fit_scores_one(self):
        self.assertEqual(similarity([1, 2, 3], [2, 4, 6]), 1.0)

    def test_no_fit_scores_zero(self):
        self.assertEqual(similarity([1.0], [1.0]), 0.0)
        self.assertEqual(similarity([2.0, 2.0, 2.0], [1.0, 2.0, 3.0]), 0.0)

    def test_matches_residual_variance_formula(self):
        x = [0.0, 1.0, 2.0, 3.0]
        y = [1.0, 3.0, 2.0, 4.0]
        residuals = fit_residuals(x, y).residuals
        variance = sum(r * r for r in residuals) / len(residuals)

        self.assertAlmostEqual(similarity(x, y), 1.0 / (1.0 + variance))

    def test_decreases_with_residual_variance(self):
        x = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
        tight = [0.1, 0.9, 2.1, 2.9, 4.1, 4.9]
        loose = [3.0, -2.0, 5.0, -1.0, 8.0, 1.0]

        self.assertGreater(similarity(x, tight), similarity(x, loose))
        self.assertGreaterEqual(similarity(x, loose), 0.0)
        self.assertLessEqual(similarity(x, tight), 1.0)

    def test_nan_residual_variance_scores_one(self):
        self.assertEqual(similarity([1.0, 2.0, 3.0], [1.0, float("nan"), 3.0]), 1.0)

    def test_is_similar_uses_threshold(self):
        self.assertEqual(SIMILARITY_THRESHOLD, 0.5)
        self.assertLess(OPPOSITE_THRESHOLD, SIMILARITY_THRESHOLD)
        self.assertTrue(is_similar([1, 2, 3], [2, 4, 6]))
        # zero slope, residual variance 5.0 -> score 1/6
        self.assertFalse(is_similar([0.0, 1.0, 2.0, 3.0], [2.0, -2.0, 4.0, 0.0]))


class EndToEndTests(unittest.TestCase):
    def test_proportional_prices_are_similar(self):
        returns_a = compute_returns([100, 102, 101, 105, 110])
        returns_b = compute_returns([50, 51, 50.5, 52.5, 55])

        self.assertEqual(len(returns_a), 4)
        for a, b in zip(returns_a, returns_b):
            self.assertAlmostEqual(a, b, places=12)
        self.assertAlmostEqual(pearson(returns_a, returns_b), 1.0, places=9)
        self.assertAlmostEqual(similarity(returns_a, returns_b), 1.0, places=9)
        self.assertTrue(is_similar(returns_a, returns_b))


if __name__ == "__main__":
    unittest.main()
