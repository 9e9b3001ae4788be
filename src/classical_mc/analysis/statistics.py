# -*- coding: utf-8 -*-
"""
观测量时间序列误差分析

马尔可夫链产生的测量序列是相关的，朴素标准误 σ/√n 会低估误差。
本模块提供：
    - 积分自相关时间 τ_int（Sokal 自洽窗口法，Geyer IPS 兜底）
    - 有效样本数 ESS = n / (2 τ_int)
    - 自相关修正的均值误差 σ √(2 τ_int / n)
    - 分块分析（level-doubling blocking），返回平台误差与完整曲线

空序列、常数序列、含 NaN/Inf 的序列自动降级，不抛异常。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

__all__ = [
    "autocorrelation_time",
    "effective_sample_size",
    "estimate_error_with_autocorr",
    "blocking_analysis",
    "BlockingResult",
]

# ---------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------
def _finite(x) -> np.ndarray:
    """一维 float 向量，仅保留有限值。"""
    y = np.asarray(x, dtype=float).ravel()
    return y[np.isfinite(y)]


def _autocorrelation(x: np.ndarray, max_lag: int) -> np.ndarray:
    """
    FFT 自相关 rho[0..max_lag]（rho[0] = 1）。
    自协方差按配对数 (n-k) 归一；零方差序列只返回 rho[0]。
    """
    n = x.size
    x = x - x.mean()
    m = 1 << (2 * n - 1).bit_length()
    f = np.fft.rfft(x, n=m)
    acov = np.fft.irfft(f * np.conj(f), n=m)[:n]
    acov = acov / np.maximum(n - np.arange(n), 1).astype(float)

    rho = np.zeros(max_lag + 1, dtype=float)
    rho[0] = 1.0
    if not np.isfinite(acov[0]) or acov[0] <= 0.0:
        return rho
    rho[1:] = acov[1 : max_lag + 1] / acov[0]
    return rho


def _tau_initial_positive_sequence(rho: np.ndarray) -> float:
    """Geyer IPS：成对和 rho[t]+rho[t+1] 首次非正时截断。"""
    total = 0.0
    t = 1
    while t < rho.size:
        pair = rho[t] + (rho[t + 1] if t + 1 < rho.size else 0.0)
        if pair <= 0.0:
            break
        total += pair
        t += 2
    return max(1.0, 0.5 + total)


# ---------------------------------------------------------------------
# τ_int / ESS / 误差
# ---------------------------------------------------------------------
def autocorrelation_time(data, max_lag: Optional[int] = None, c: float = 5.0) -> float:
    """
    估计积分自相关时间 τ_int（>= 1）。

    Sokal 窗口：迭代 W = floor(c·τ)，τ = 1/2 + Σ_{t=1..W} rho[t] 至收敛；
    发散、非有限或 τ > n/2 时回退到 IPS。n < 4 返回 1.0。
    """
    x = _finite(data)
    n = x.size
    if n < 4:
        return 1.0
    lag = min(n - 1, 4096) if max_lag is None else int(max(1, min(max_lag, n - 1)))
    rho = _autocorrelation(x, lag)

    tau = 0.5
    converged = False
    for _ in range(50):
        window = int(min(lag, max(1, math.floor(c * tau))))
        tau_new = 0.5 + float(np.sum(rho[1 : window + 1]))
        if not np.isfinite(tau_new) or tau_new <= 0.0:
            break
        if math.isclose(tau, tau_new, rel_tol=1e-3, abs_tol=1e-6):
            tau = tau_new
            converged = True
            break
        tau = tau_new

    if not converged or tau > 0.5 * n:
        tau = _tau_initial_positive_sequence(rho)
    return float(max(1.0, tau))


def effective_sample_size(data, tau: Optional[float] = None) -> float:
    """ESS ≈ n / (2 τ_int)；空序列为 0。"""
    x = _finite(data)
    if x.size == 0:
        return 0.0
    if tau is None:
        tau = autocorrelation_time(x)
    return float(x.size / (2.0 * max(1.0, float(tau))))


def estimate_error_with_autocorr(data, tau: Optional[float] = None) -> Tuple[float, float]:
    """均值误差 σ √(2τ/n)，返回 (err, tau)。空序列返回 (nan, 1.0)。"""
    x = _finite(data)
    n = x.size
    if n == 0:
        return float("nan"), 1.0
    if tau is None:
        tau = autocorrelation_time(x)
    tau = max(1.0, float(tau))
    sigma = float(np.std(x, ddof=1)) if n > 1 else 0.0
    return float(sigma * math.sqrt(2.0 * tau / n)), tau


# ---------------------------------------------------------------------
# 分块分析（Flyvbjerg–Petersen）
# ---------------------------------------------------------------------
@dataclass
class BlockingResult:
    error: float
    block_sizes: np.ndarray
    n_blocks: np.ndarray
    stderrs: np.ndarray
    plateau: bool = False  # 误差是否取自平台平均


def blocking_analysis(
    data,
    min_block_size: int = 1,
    plateau_window: int = 3,
    slope_tol: float = 0.1,
    min_blocks: int = 32,
) -> BlockingResult:
    """
    Level-doubling 分块分析。

    块长 b = min_block_size · 2^k，块数 >= 2 时记录块均值标准误。
    误差只取块数 >= min_blocks 的层级（没有这样的层级时取全部层级）：
    最近 plateau_window 段 log-log 斜率绝对值均值 < slope_tol 视为平台，
    取这几段标准误的平均；否则取这些层级中最大的标准误。
    无法形成两个块时退化为朴素标准误；空序列 error 为 nan。
    """
    x = _finite(data)
    n = x.size
    empty = np.array([], dtype=float)
    if n == 0:
        return BlockingResult(float("nan"), empty.astype(int), empty.astype(int), empty)
    naive = float(np.std(x, ddof=1) / math.sqrt(n)) if n > 1 else 0.0

    sizes, counts, errs = [], [], []
    b = int(max(1, min_block_size))
    while n // b >= 2:
        nb = n // b
        means = x[: nb * b].reshape(nb, b).mean(axis=1)
        sizes.append(b)
        counts.append(nb)
        errs.append(float(np.std(means, ddof=1) / math.sqrt(nb)))
        b *= 2

    if not sizes:
        return BlockingResult(naive, np.array([1]), np.array([n]), np.array([naive]))

    bs = np.asarray(sizes, dtype=int)
    se = np.asarray(errs, dtype=float)
    usable = np.asarray(counts) >= int(min_blocks)
    if not usable.any():
        usable[:] = True
    ubs, use = bs[usable], se[usable]
    error = float(np.max(use))
    plateau = False
    w = int(plateau_window)
    if use.size >= w + 1:
        slopes = np.diff(np.log(use + 1e-30)) / np.diff(np.log(ubs))
        if float(np.mean(np.abs(slopes[-w:]))) < slope_tol:
            error = float(np.mean(use[-w:]))
            plateau = True
    return BlockingResult(error, bs, np.asarray(counts, dtype=int), se, plateau=plateau)
