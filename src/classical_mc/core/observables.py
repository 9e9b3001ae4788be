# -*- coding: utf-8 -*-
"""
    观测量与观测量注册表

每个观测量是一条追加式的测量序列（每个测量 sweep 追加一次），
注册表是 name -> Observable 的有序映射，由模型在 init 时声明。

生命周期：
    - 创建：名称唯一（重复名称抛 ObservableError）
    - 测量：只允许追加（Observable.add / add_many）
    - 终结：finalize(hook) 只执行一次；hook 内仍可追加（用于写入导出量，
      如比热/磁化率），hook 返回后整个注册表封存。再次 finalize 或封存后
      追加均抛 AlreadyFinalizedError，已有数值不变。

读取：
    mean / var / std / tau / error 在任何时刻可读；空序列的均值等为 NaN。

另附热力学估计量（涨落公式）：
    specific_heat_per_site   C/N = β² N var(e)
    susceptibility_per_site  χ/N = β N var(m)
    binder_cumulant          U = 1 - <m⁴> / (3 <m²>²)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import numpy as np

from .errors import AlreadyFinalizedError, ObservableError
from ..analysis import statistics as stats

__all__ = [
    "Observable",
    "ObservableRegistry",
    "specific_heat_per_site",
    "susceptibility_per_site",
    "binder_cumulant",
]


# ---------------------------------------------------------------------
# Observable
# ---------------------------------------------------------------------
class Observable:
    """单个观测量的测量序列。"""

    def __init__(self, name: str, description: str = ""):
        self.name = str(name)
        self.description = description
        self._values: List[float] = []
        self._sealed = False

    # ---- 写入 ----
    def add(self, value: Any) -> None:
        if self._sealed:
            raise AlreadyFinalizedError(f"observable {self.name!r} is finalized; cannot add values")
        self._values.append(float(value))

    def add_many(self, values: Iterable[Any]) -> None:
        for v in values:
            self.add(v)

    def _seal(self) -> None:
        self._sealed = True

    @property
    def finalized(self) -> bool:
        return self._sealed

    # ---- 读取 ----
    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, idx):
        return self._values[idx]

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    @property
    def values(self) -> np.ndarray:
        """测量序列副本（float64）。"""
        return np.asarray(self._values, dtype=np.float64)

    def mean(self) -> float:
        if not self._values:
            return float("nan")
        return float(np.mean(self._values))

    def var(self) -> float:
        if not self._values:
            return float("nan")
        return float(np.var(self._values))

    def std(self) -> float:
        if not self._values:
            return float("nan")
        return float(np.std(self._values))

    def tau(self) -> float:
        """积分自相关时间（单位：测量次数）。"""
        return stats.autocorrelation_time(self._values)

    def error(self, method: str = "blocking") -> float:
        """
        均值的统计误差。
          method='blocking'  分块分析平台误差（默认）
          method='autocorr'  σ √(2τ/n)
          method='naive'     σ/√n（忽略相关）
        """
        n = len(self._values)
        if n == 0:
            return float("nan")
        if method == "blocking":
            return stats.blocking_analysis(self._values).error
        if method == "autocorr":
            return stats.estimate_error_with_autocorr(self._values)[0]
        if method == "naive":
            return float(np.std(self._values, ddof=1) / np.sqrt(n)) if n > 1 else 0.0
        raise ValueError(f"unknown error method {method!r}; use 'blocking', 'autocorr' or 'naive'")

    def summary(self) -> Dict[str, Any]:
        return {"name": self.name, "count": len(self), "mean": self.mean(), "error": self.error()}

    def __repr__(self) -> str:
        return f"Observable({self.name!r}, count={len(self)}, mean={self.mean():.6g})"


# ---------------------------------------------------------------------
# ObservableRegistry
# ---------------------------------------------------------------------
class ObservableRegistry(Mapping):
    """name -> Observable 的有序映射；名称唯一，finalize 只执行一次。"""

    def __init__(self, observables: Optional[Iterable[Observable]] = None):
        self._obs: Dict[str, Observable] = {}
        self._finalized = False
        for o in (observables or ()):
            self.register(o)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ObservableRegistry":
        return cls(Observable(n) for n in names)

    def register(self, observable: Observable) -> Observable:
        if self._finalized:
            raise AlreadyFinalizedError("registry is finalized; cannot register new observables")
        if observable.name in self._obs:
            raise ObservableError(f"duplicate observable name {observable.name!r}")
        self._obs[observable.name] = observable
        return observable

    def add(self, name: str, description: str = "") -> Observable:
        """创建并注册一个新观测量。"""
        return self.register(Observable(name, description))

    # ---- Mapping ----
    def __getitem__(self, name: str) -> Observable:
        try:
            return self._obs[name]
        except KeyError:
            raise ObservableError(f"unknown observable {name!r}; known: {list(self._obs)}") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._obs)

    def __len__(self) -> int:
        return len(self._obs)

    # ---- 生命周期 ----
    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self, hook: Optional[Callable[["ObservableRegistry"], None]] = None) -> "ObservableRegistry":
        """
        执行 hook（通常是模型的 finish_observables）后封存所有观测量。
        第二次调用抛 AlreadyFinalizedError。hook 抛出的异常原样传播，
        此时注册表保持未封存。
        """
        if self._finalized:
            raise AlreadyFinalizedError("observable registry has already been finalized")
        if hook is not None:
            hook(self)
        for o in self._obs.values():
            o._seal()
        self._finalized = True
        return self

    def means(self) -> Dict[str, float]:
        return {k: o.mean() for k, o in self._obs.items()}

    def summary(self) -> Dict[str, Dict[str, Any]]:
        return {k: o.summary() for k, o in self._obs.items()}

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"ObservableRegistry({list(self._obs)}, {state})"


# ---------------------------------------------------------------------
# 热力学估计量（返回 float；空序列返回 nan）
# ---------------------------------------------------------------------
def specific_heat_per_site(e_series: Any, beta: float, n_sites: int) -> float:
    """
    能量涨落估计比热（每格点）：C/N = β² N var(e)，e 为每格点能量序列。
    """
    if n_sites <= 0:
        raise ValueError("n_sites must be positive")
    e = np.asarray(e_series, dtype=np.float64).ravel()
    if e.size == 0:
        return float("nan")
    return float(beta * beta * n_sites * np.var(e))


def susceptibility_per_site(m_series: Any, beta: float, n_sites: int) -> float:
    """
    磁化涨落估计磁化率（每格点）：χ/N = β N var(m)，m 为每格点磁化序列
    （有限体系通常传 |m| 序列）。
    """
    if n_sites <= 0:
        raise ValueError("n_sites must be positive")
    m = np.asarray(m_series, dtype=np.float64).ravel()
    if m.size == 0:
        return float("nan")
    return float(beta * n_sites * np.var(m))


def binder_cumulant(m_series: Any) -> float:
    """U = 1 - <m⁴> / (3 <m²>²)；<m²> ≈ 0 时返回 0。"""
    m = np.asarray(m_series, dtype=np.float64).ravel()
    if m.size == 0:
        return float("nan")
    m2 = float(np.mean(m * m))
    if np.isclose(m2, 0.0, atol=1e-20):
        return 0.0
    m4 = float(np.mean(m ** 4))
    return float(1.0 - m4 / (3.0 * m2 * m2))
