# -*- coding: utf-8 -*-
"""
模型能力接口

引擎只通过 `Model` 定义的能力与物理模型交互，不了解模型内部
（晶格拓扑、自旋取值、提议分布均由模型决定）。

子类需要实现：
  1. `beta`、`n_sites`：逆温度与格点数（sweep 逐格点遍历 range(n_sites)）。
  2. `conftype()`：构型的具体类型；init 时用于校验 rand() 的返回值。
  3. `rand(rng)`：随机初始构型。
  4. `energy(conf)`：总能量（init 与一致性检查时调用）。
  5. `propose_local(i, conf, energy, rng)`：在格点 i 提议一次改变，
     **不得修改 conf**，返回 (ΔE, move)；move 是 accept_local 所需的任意数据。
  6. `accept_local(i, conf, energy, move, dE)`：原地应用此前的提议；
     不改动能量（由引擎累加 ΔE）。
  7. `prepare_observables()` / `measure_observables(...)`：声明与记录观测量。

可选覆盖：
  - `global_move(conf, energy, rng) -> bool`：默认拒绝。接受时可原地修改 conf，
    引擎随后以 energy(conf) 重新对齐跟踪的能量。
  - `finish_observables(obs)`：测量结束后的后处理，默认无操作。

所有随机性都来自引擎传入的 rng（模拟实例自有的 numpy.random.Generator）。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Tuple

import numpy as np

from .observables import ObservableRegistry

__all__ = ["Model"]


class Model(ABC):
    """经典蒙特卡洛模型的抽象基类。"""

    @property
    @abstractmethod
    def beta(self) -> float:
        """逆温度 β = 1/T。"""

    @property
    @abstractmethod
    def n_sites(self) -> int:
        """格点数 N。"""

    @abstractmethod
    def conftype(self) -> type:
        ...

    @abstractmethod
    def rand(self, rng: np.random.Generator) -> Any:
        ...

    @abstractmethod
    def energy(self, conf: Any) -> float:
        ...

    @abstractmethod
    def propose_local(self, i: int, conf: Any, energy: float,
                      rng: np.random.Generator) -> Tuple[float, Any]:
        ...

    @abstractmethod
    def accept_local(self, i: int, conf: Any, energy: float, move: Any, dE: float) -> None:
        ...

    def global_move(self, conf: Any, energy: float, rng: np.random.Generator) -> bool:
        return False

    @abstractmethod
    def prepare_observables(self) -> ObservableRegistry:
        ...

    @abstractmethod
    def measure_observables(self, obs: ObservableRegistry, conf: Any, energy: float) -> None:
        ...

    def finish_observables(self, obs: ObservableRegistry) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(beta={self.beta}, n_sites={self.n_sites})"
