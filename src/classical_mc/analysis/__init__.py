# -*- coding: utf-8 -*-
"""
分析层
======

观测量时间序列的统计误差分析。

子模块
------
- statistics: 积分自相关时间、有效样本数、分块误差

示例
----
>>> from classical_mc.analysis import statistics as stats
>>> tau = stats.autocorrelation_time(series)
>>> res = stats.blocking_analysis(series)
>>> res.error
"""

# classical_mc/analysis/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["statistics"]

_lazy = {
    "statistics": ".statistics",
}

def __getattr__(name: str):
    if name in _lazy:
        mod = import_module(_lazy[name], __name__)
        globals()[name] = mod
        return mod
    raise AttributeError(f"{__name__} has no attribute {name!r}")

def __dir__():
    return sorted(list(__all__))

if TYPE_CHECKING:
    from . import statistics
