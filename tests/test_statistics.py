# -*- coding: utf-8 -*-
"""
时间序列误差分析单元测试：自相关时间、ESS、分块分析
"""

import math
import sys
import unittest
from pathlib import Path

import numpy as np

try:
    _ROOT = Path(__file__).resolve().parents[1]
except NameError:
    _ROOT = Path.cwd()

if str(_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(_ROOT / "src"))

from classical_mc.analysis import statistics as stats


def _ar1(phi: float, n: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    noise = rng.normal(size=n)
    x = np.empty(n)
    x[0] = noise[0]
    for t in range(1, n):
        x[t] = phi * x[t - 1] + noise[t]
    return x


class TestAutocorrelation(unittest.TestCase):

    def test_white_noise(self):
        x = np.random.default_rng(1).normal(size=20_000)
        tau = stats.autocorrelation_time(x)
        self.assertGreaterEqual(tau, 1.0)
        self.assertLess(tau, 1.5)

    def test_correlated_series(self):
        phi = 0.9
        x = _ar1(phi, 50_000, seed=2)
        tau = stats.autocorrelation_time(x)
        expected = (1 + phi) / (2 * (1 - phi))  # 9.5
        self.assertGreater(tau, 0.6 * expected)
        self.assertLess(tau, 1.5 * expected)

    def test_degenerate_inputs(self):
        self.assertEqual(stats.autocorrelation_time([]), 1.0)
        self.assertEqual(stats.autocorrelation_time([1.0, 2.0, 3.0]), 1.0)
        self.assertEqual(stats.autocorrelation_time(np.full(100, 3.0)), 1.0)
        self.assertEqual(stats.autocorrelation_time([1.0, np.nan, 2.0]), 1.0)

    def test_effective_sample_size(self):
        self.assertEqual(stats.effective_sample_size([]), 0.0)
        self.assertAlmostEqual(stats.effective_sample_size(np.arange(10.0), tau=5.0), 1.0)

    def test_error_with_autocorr(self):
        x = _ar1(0.8, 20_000, seed=3)
        err, tau = stats.estimate_error_with_autocorr(x)
        naive = np.std(x, ddof=1) / math.sqrt(x.size)
        self.assertGreater(err, naive)
        self.assertGreater(tau, 1.0)
        err0, tau0 = stats.estimate_error_with_autocorr([])
        self.assertTrue(math.isnan(err0))
        self.assertEqual(tau0, 1.0)


class TestBlocking(unittest.TestCase):

    def test_block_levels(self):
        x = np.random.default_rng(4).normal(size=1024)
        res = stats.blocking_analysis(x)
        self.assertEqual(res.block_sizes[0], 1)
        np.testing.assert_array_equal(res.block_sizes, 2 ** np.arange(res.block_sizes.size))
        self.assertEqual(res.n_blocks[-1], 2)
        self.assertTrue(math.isfinite(res.error))
        self.assertGreater(res.error, 0.0)

    def test_correlated_error_exceeds_naive(self):
        x = _ar1(0.9, 2 ** 15, seed=5)
        res = stats.blocking_analysis(x)
        naive = np.std(x, ddof=1) / math.sqrt(x.size)
        self.assertGreater(res.error, 2.0 * naive)

    def test_degenerate_inputs(self):
        self.assertTrue(math.isnan(stats.blocking_analysis([]).error))
        self.assertEqual(stats.blocking_analysis([2.0]).error, 0.0)
        self.assertEqual(stats.blocking_analysis(np.full(64, 1.5)).error, 0.0)


if __name__ == "__main__":
    unittest.main()
