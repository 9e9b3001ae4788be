# -*- coding: utf-8 -*-
"""
模拟实例自有的随机数生成器

每个 MC 实例持有一个 `numpy.random.Generator`，并显式传给所有采样操作
（初始构型、局域提议、接受判据、全局更新），不依赖任何全局随机状态。
给定整数种子时使用 Philox 位生成器（32-bit 截断，便于跨实现对齐）；
未给种子时从操作系统熵源取种。
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.random import Generator, Philox

__all__ = ["seed32", "make_generator", "rng_model"]


def seed32(seed: int) -> int:
    """将任意整数截断为 32-bit 无符号整数。"""
    try:
        s = int(seed)
    except (TypeError, ValueError):
        raise ValueError(f"seed must be convertible to int, got {seed!r}")
    return s & 0xFFFFFFFF


def make_generator(seed: Optional[int] = None) -> np.random.Generator:
    """
    构造 Generator：
      - seed 为整数：Philox(seed32(seed))，完全可复现
      - seed 为 None：default_rng()，使用新熵
    """
    if seed is None:
        return np.random.default_rng()
    return Generator(Philox(seed32(seed)))


def rng_model(rng: np.random.Generator) -> str:
    """返回位生成器类名（用于日志溯源）。"""
    return type(rng.bit_generator).__name__
