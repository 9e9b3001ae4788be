# -*- coding: utf-8 -*-
"""
异常体系

所有错误均为致命错误：引擎不做内部恢复或重试（sweep 在被拒绝的提议之间
并不幂等，盲目重试会破坏统计量）。异常携带足以复现问题的上下文
（sweep 序号、格点序号）。
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "MCError",
    "ConfigurationTypeMismatch",
    "NumericalError",
    "UninitializedStateError",
    "SimulationStateError",
    "ObservableError",
    "AlreadyFinalizedError",
]


class MCError(Exception):
    """classical_mc 所有异常的基类。"""


class ConfigurationTypeMismatch(MCError, TypeError):
    """模型声明的构型类型与 rand() 实际返回的类型不一致（init 阶段）。"""

    def __init__(self, expected: type, got: type):
        self.expected = expected
        self.got = got
        super().__init__(
            f"model declares configuration type {expected.__name__!r} "
            f"but rand() returned {got.__name__!r}"
        )


class NumericalError(MCError, ArithmeticError):
    """
    数值错误：提议步给出非有限的 ΔE、初始能量非有限，
    或增量维护的能量与重新计算值偏离超出容差。
    """

    def __init__(self, message: str, sweep: Optional[int] = None, site: Optional[int] = None):
        self.sweep = sweep
        self.site = site
        ctx = []
        if sweep is not None:
            ctx.append(f"sweep={sweep}")
        if site is not None:
            ctx.append(f"site={site}")
        if ctx:
            message = f"{message} ({', '.join(ctx)})"
        super().__init__(message)


class UninitializedStateError(MCError, RuntimeError):
    """在 init() 之前（或已完成的运行未重新 init）调用 run()。"""


class SimulationStateError(MCError, RuntimeError):
    """运行状态机被违反，例如 run() 重入。"""


class ObservableError(MCError, KeyError):
    """观测量名称重复或不存在。"""

    def __str__(self) -> str:
        # KeyError 默认会给消息加引号
        return str(self.args[0]) if self.args else ""


class AlreadyFinalizedError(MCError, RuntimeError):
    """注册表已 finalize：禁止再次 finalize 或继续追加测量值。"""
