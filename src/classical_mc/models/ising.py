# -*- coding: utf-8 -*-
"""
    d 维超立方 Ising 模型（周期边界）

    H = -J Σ_<ij> s_i s_j - h Σ_i s_i ,  s_i ∈ {-1, +1}

构型为长度 N = L^d 的扁平 int8 数组，格点按 C 顺序编号；近邻表
`neighbors[i]` 前 d 列为正方向邻居、后 d 列为反方向邻居。

局域更新：单自旋翻转，ΔE = 2 s_i (J Σ_nn s_j + h)。
全局更新：Wolff 单簇翻转（仅 h = 0、J > 0 时满足细致平衡）；
簇内所有自旋同时翻转，总是接受。

观测量：
    E, E2, e (E/N), M, |M|, M2, m (|M|/N)   每个测量 sweep 记录
    C (比热/格点), χ (磁化率/格点), U (Binder 累积量)   finish 时由涨落计算
"""

from __future__ import annotations

import math
from typing import Any, Optional, Tuple

import numpy as np

from ..core.model import Model
from ..core.observables import (
    ObservableRegistry,
    binder_cumulant,
    specific_heat_per_site,
    susceptibility_per_site,
)

__all__ = ["IsingModel", "hypercubic_neighbors"]

_FIELD_TOL = 1e-12


def hypercubic_neighbors(L: int, dims: int) -> np.ndarray:
    """周期超立方晶格近邻表，shape (L^dims, 2*dims)，dtype int64。"""
    idx = np.arange(L ** dims, dtype=np.int64).reshape((L,) * dims)
    fwd = [np.roll(idx, -1, axis=d).ravel() for d in range(dims)]
    bwd = [np.roll(idx, 1, axis=d).ravel() for d in range(dims)]
    return np.ascontiguousarray(np.stack(fwd + bwd, axis=1))


class IsingModel(Model):
    """经典 Ising 模型。"""

    def __init__(self, dims: int = 2, L: int = 8, beta: float = 1.0, J: float = 1.0, h: float = 0.0):
        if not (isinstance(dims, int) and 1 <= dims <= 3):
            raise ValueError(f"dims must be 1, 2 or 3, got {dims!r}")
        if not (isinstance(L, int) and L >= 2):
            raise ValueError(f"L must be an integer >= 2, got {L!r}")
        beta = float(beta)
        if math.isnan(beta) or beta < 0.0:
            raise ValueError(f"beta must be non-negative, got {beta!r}")

        self.dims = dims
        self.L = L
        self.J = float(J)
        self.h = float(h)
        self._beta = beta
        self._N = L ** dims
        self.neighbors = hypercubic_neighbors(L, dims)
        self.last_cluster_size: Optional[int] = None

    # ---- 基本量 ----
    @property
    def beta(self) -> float:
        return self._beta

    @property
    def n_sites(self) -> int:
        return self._N

    def conftype(self) -> type:
        return np.ndarray

    def rand(self, rng: np.random.Generator) -> np.ndarray:
        return (rng.integers(0, 2, size=self._N, dtype=np.int8) * 2 - 1).astype(np.int8)

    def energy(self, conf: np.ndarray) -> float:
        """总能量（每条键只计一次：只取正方向邻居）。"""
        s = np.asarray(conf, dtype=np.int64)
        fwd = s[self.neighbors[:, : self.dims]]
        e_bond = -self.J * float(np.sum(s[:, None] * fwd, dtype=np.int64))
        e_field = -self.h * float(np.sum(s, dtype=np.int64))
        return e_bond + e_field

    # ---- 局域更新 ----
    def propose_local(self, i: int, conf: np.ndarray, energy: float,
                      rng: np.random.Generator) -> Tuple[float, Any]:
        s = int(conf[i])
        nsum = int(np.sum(conf[self.neighbors[i]], dtype=np.int64))
        return 2.0 * s * (self.J * nsum + self.h), None

    def accept_local(self, i: int, conf: np.ndarray, energy: float, move: Any, dE: float) -> None:
        conf[i] = -conf[i]

    # ---- 全局更新：Wolff ----
    def global_move(self, conf: np.ndarray, energy: float, rng: np.random.Generator) -> bool:
        if abs(self.h) > _FIELD_TOL:
            raise ValueError(f"Wolff cluster move is not allowed when h != 0 (h={self.h})")
        if self.J <= 0.0:
            return False

        p_add = 1.0 - math.exp(-2.0 * self._beta * self.J)
        seed = int(rng.integers(self._N))
        s0 = conf[seed]
        in_cluster = np.zeros(self._N, dtype=bool)
        in_cluster[seed] = True
        stack = [seed]
        while stack:
            i = stack.pop()
            for j in self.neighbors[i]:
                if not in_cluster[j] and conf[j] == s0 and rng.random() < p_add:
                    in_cluster[j] = True
                    stack.append(int(j))
        conf[in_cluster] = -s0
        self.last_cluster_size = int(np.count_nonzero(in_cluster))
        return True

    # ---- 观测量 ----
    def prepare_observables(self) -> ObservableRegistry:
        obs = ObservableRegistry()
        obs.add("E", "total energy")
        obs.add("E2", "squared total energy")
        obs.add("e", "energy per site")
        obs.add("M", "total magnetization")
        obs.add("|M|", "absolute total magnetization")
        obs.add("M2", "squared total magnetization")
        obs.add("m", "absolute magnetization per site")
        obs.add("C", "specific heat per site")
        obs.add("χ", "susceptibility per site")
        obs.add("U", "Binder cumulant")
        return obs

    def measure_observables(self, obs: ObservableRegistry, conf: np.ndarray, energy: float) -> None:
        N = self._N
        M = float(np.sum(conf, dtype=np.int64))
        obs["E"].add(energy)
        obs["E2"].add(energy * energy)
        obs["e"].add(energy / N)
        obs["M"].add(M)
        obs["|M|"].add(abs(M))
        obs["M2"].add(M * M)
        obs["m"].add(abs(M) / N)

    def finish_observables(self, obs: ObservableRegistry) -> None:
        if len(obs["e"]) == 0:
            return
        N = self._N
        obs["C"].add(specific_heat_per_site(obs["e"].values, self._beta, N))
        obs["χ"].add(susceptibility_per_site(obs["m"].values, self._beta, N))
        obs["U"].add(binder_cumulant(obs["M"].values / N))

    def __repr__(self) -> str:
        return f"IsingModel(dims={self.dims}, L={self.L}, beta={self._beta}, J={self.J}, h={self.h})"
