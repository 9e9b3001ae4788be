# -*- coding: utf-8 -*-
"""
    经典蒙特卡洛模拟器（单链 Metropolis）

    此模块实现与模型无关的模拟引擎 `MC`：逐格点 Metropolis sweep、全局更新钩子、
    热化 + 测量运行控制，以及接受率/计时统计。模型通过 `classical_mc.core.model.Model`
    接入，引擎不了解其内部。

实现功能:
    - 两阶段构造: MC(model) 只绑定模型与参数（CREATED）；init(seed) 采样构型、
      计算能量、重建观测量注册表与统计量（INITIALIZED），可重复调用以从头开始。
    - 能量增量维护: 仅在接受局域提议时 energy += ΔE；全局更新被接受后以
      model.energy(conf) 重新对齐。可选周期性一致性检查（energy_check_interval）。
    - 多时间尺度接受率: 每 sweep 累加、每报告区间的滚动值、全程累积值。
    - 实例自有 RNG: numpy.random.Generator 显式传给所有采样操作，可复现。
    - 可注入时钟: 计时只在报告区间边界查询时钟，测试可用假时钟。
    - 提前停止: should_stop(i) 每 sweep 检查一次，命中后进入 PARTIAL 状态。

状态机:
    CREATED -> INITIALIZED -> RUNNING -> COMPLETED | PARTIAL
    运行中抛出的任何异常使状态变为 FAILED，需要重新 init()。
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..core.errors import (
    ConfigurationTypeMismatch,
    NumericalError,
    SimulationStateError,
    UninitializedStateError,
)
from ..core.model import Model
from ..core.observables import Observable, ObservableRegistry
from ..core.rng import make_generator, rng_model

logger = logging.getLogger(__name__)

__all__ = [
    "MC",
    "MCParameters",
    "MCAnalysis",
    "ProgressReport",
    "RunStatus",
    "SystemClock",
]

# 能量一致性检查的容差
ENERGY_RTOL = 1e-9
ENERGY_ATOL = 1e-9


# -------------------------
# 参数 / 统计 / 报告
# -------------------------
@dataclass
class MCParameters:
    global_moves: bool = False
    global_rate: int = 5             # 每多少个 sweep 尝试一次全局更新
    thermalization: int = 0          # 热化 sweep 数（不测量）
    sweeps: int = 1000               # 测量 sweep 数（热化之后）
    report_interval: int = 1000      # 进度报告/计时区间（sweep）
    energy_check_interval: int = 0   # 0 表示关闭周期性能量检查

    def __post_init__(self):
        self.global_moves = bool(self.global_moves)
        for name in ("global_rate", "report_interval"):
            v = getattr(self, name)
            if not (isinstance(v, int) and not isinstance(v, bool) and v > 0):
                raise ValueError(f"{name} must be a positive integer (got {v!r})")
        for name in ("thermalization", "sweeps", "energy_check_interval"):
            v = getattr(self, name)
            if not (isinstance(v, int) and not isinstance(v, bool) and v >= 0):
                raise ValueError(f"{name} must be a non-negative integer (got {v!r})")

    @property
    def total_sweeps(self) -> int:
        return self.thermalization + self.sweeps


@dataclass
class MCAnalysis:
    acc_rate: float = 0.0         # 局域接受率（滚动；结束时为全程值）
    prop_local: int = 0
    acc_local: int = 0
    acc_rate_global: float = 0.0  # 全局接受（滚动计数；结束时为全程比率）
    prop_global: int = 0
    acc_global: int = 0
    sweep_dur: float = 0.0        # 每 sweep 平均耗时（秒）

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ProgressReport:
    sweep: int
    sweep_dur: float                 # 该区间内每 sweep 耗时（秒）
    acc_rate: float                  # 区间内局域接受率
    acc_rate_global: float           # 区间内全局接受率（无提议时为 nan）
    acc_rate_global_overall: float   # 截至当前的累积全局接受率


class RunStatus(str, Enum):
    CREATED = "created"
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class SystemClock:
    """默认时钟：time() 为单调秒数，now() 为本地时间戳。"""

    def time(self) -> float:
        return time.perf_counter()

    def now(self) -> datetime:
        return datetime.now()


def _ratio(num: float, den: float) -> float:
    return float(num) / float(den) if den else float("nan")


def _stamp(t: datetime) -> str:
    """形如 1.Jan 2024 12:00（日期不补零）。"""
    return f"{t.day}.{t.strftime('%b %Y %H:%M')}"


# -------------------------
# 已初始化状态（init 产生）
# -------------------------
@dataclass
class _MCState:
    conf: Any
    energy: float
    obs: ObservableRegistry
    a: MCAnalysis = field(default_factory=MCAnalysis)
    sweep_count: int = 0
    reports: List[ProgressReport] = field(default_factory=list)
    sweep_durations: Optional[Observable] = None


# -------------------------
# 主体类
# -------------------------
class MC:
    """
    经典蒙特卡洛模拟（单链、单线程）。

    >>> mc = MC(model)                   # CREATED，默认参数
    >>> mc.init(seed=1)                  # INITIALIZED
    >>> obs = mc.run(sweeps=10_000, thermalization=1_000)
    """

    def __init__(self, model: Model, params: Optional[MCParameters] = None, clock: Any = None):
        if not isinstance(model, Model):
            raise TypeError(f"model must implement classical_mc.core.model.Model, got {type(model).__name__}")
        self.model = model
        self.p = params if params is not None else MCParameters()
        self.clock = clock if clock is not None else SystemClock()
        self.rng = make_generator(None)
        self.seed: Optional[int] = None
        self.status = RunStatus.CREATED
        self._state: Optional[_MCState] = None

    # -------------------------
    # 状态访问
    # -------------------------
    def _require_state(self) -> _MCState:
        if self._state is None:
            raise UninitializedStateError("simulation is not initialized; call init() first")
        return self._state

    @property
    def conf(self) -> Any:
        return self._require_state().conf

    @property
    def energy(self) -> float:
        return self._require_state().energy

    @property
    def obs(self) -> ObservableRegistry:
        return self._require_state().obs

    @property
    def a(self) -> MCAnalysis:
        return self._require_state().a

    @property
    def reports(self) -> List[ProgressReport]:
        return list(self._require_state().reports)

    @property
    def sweep_durations(self) -> Optional[Observable]:
        return self._require_state().sweep_durations

    # -------------------------
    # init
    # -------------------------
    def init(self, seed: Optional[int] = None) -> "MC":
        """
        （重新）初始化：采样构型、计算能量、重建观测量与统计量。
        给定 seed 时以其确定性地重建实例自有的 Generator。
        """
        if self.status is RunStatus.RUNNING:
            raise SimulationStateError("cannot init() while the simulation is running")
        if seed is not None:
            self.rng = make_generator(seed)
            self.seed = int(seed)
        else:
            self.seed = None

        conf = self.model.rand(self.rng)
        expected = self.model.conftype()
        if not isinstance(conf, expected):
            raise ConfigurationTypeMismatch(expected, type(conf))

        energy = float(self.model.energy(conf))
        if not math.isfinite(energy):
            raise NumericalError(f"initial energy is not finite: {energy!r}", sweep=0)

        obs = self.model.prepare_observables()
        if not isinstance(obs, ObservableRegistry):
            raise TypeError(f"prepare_observables() must return an ObservableRegistry, got {type(obs).__name__}")

        self._state = _MCState(conf=conf, energy=energy, obs=obs)
        self.status = RunStatus.INITIALIZED
        logger.debug("initialized %r (seed=%s, rng=%s, E=%.6g)", self.model, self.seed, rng_model(self.rng), energy)
        return self

    # -------------------------
    # sweep
    # -------------------------
    def sweep(self) -> None:
        """逐格点（固定顺序 0..N-1）做一次 Metropolis 局域更新。"""
        st = self._require_state()
        if self.status not in (RunStatus.INITIALIZED, RunStatus.RUNNING):
            raise UninitializedStateError(
                f"simulation is {self.status.value}; call init() before sweep()"
            )
        model, conf, a, rng = self.model, st.conf, st.a, self.rng
        N = int(model.n_sites)
        beta = float(model.beta)
        sweep_no = st.sweep_count + 1

        for i in range(N):
            dE, move = model.propose_local(i, conf, st.energy, rng)
            dE = float(dE)
            if not math.isfinite(dE):
                raise NumericalError(f"propose_local returned non-finite energy delta {dE!r}", sweep=sweep_no, site=i)
            a.prop_local += 1
            # Metropolis：ΔE<=0 必接受，否则以 exp(-βΔE) 接受
            if dE <= 0.0 or rng.random() < math.exp(-beta * dE):
                model.accept_local(i, conf, st.energy, move, dE)
                a.acc_rate += 1.0 / N
                a.acc_local += 1
                st.energy += dE

        st.sweep_count = sweep_no

    # -------------------------
    # 能量一致性
    # -------------------------
    def energy_drift(self) -> float:
        """重新计算的能量与跟踪能量之差。"""
        st = self._require_state()
        return float(self.model.energy(st.conf)) - st.energy

    def check_energy(self, rtol: float = ENERGY_RTOL, atol: float = ENERGY_ATOL) -> None:
        st = self._require_state()
        exact = float(self.model.energy(st.conf))
        if not math.isclose(st.energy, exact, rel_tol=rtol, abs_tol=atol):
            raise NumericalError(
                f"tracked energy {st.energy!r} deviates from recomputed energy {exact!r}",
                sweep=st.sweep_count,
            )

    def _global_move(self, st: _MCState, sweep_no: int) -> None:
        a = st.a
        a.prop_global += 1
        if self.model.global_move(st.conf, st.energy, self.rng):
            a.acc_global += 1
            a.acc_rate_global += 1.0
            energy = float(self.model.energy(st.conf))
            if not math.isfinite(energy):
                raise NumericalError(f"energy after global move is not finite: {energy!r}", sweep=sweep_no)
            st.energy = energy

    # -------------------------
    # 主运行循环：thermalization + sweeps
    # -------------------------
    def run(
        self,
        verbose: bool = True,
        sweeps: Optional[int] = None,
        thermalization: Optional[int] = None,
        should_stop: Optional[Callable[[int], bool]] = None,
    ) -> ObservableRegistry:
        """
        执行热化 + 测量循环，返回已 finalize 的观测量注册表。

        参数：
        - sweeps / thermalization: 覆盖并写回 self.p
        - verbose: 进度以 INFO 级别记录（否则为 DEBUG）
        - should_stop: 每 sweep 检查一次的停止条件，返回 True 时提前结束（PARTIAL）
        """
        if self.status is RunStatus.RUNNING:
            raise SimulationStateError("run() is not reentrant")
        if self._state is None or self.status is not RunStatus.INITIALIZED:
            raise UninitializedStateError(
                f"simulation is {self.status.value}; call init() before run()"
            )

        overrides = {}
        if sweeps is not None:
            overrides["sweeps"] = sweeps
        if thermalization is not None:
            overrides["thermalization"] = thermalization
        if overrides:
            self.p = replace(self.p, **overrides)

        st = self._state
        p, a, model, clock = self.p, st.a, self.model, self.clock
        total = p.total_sweeps
        interval = p.report_interval
        log = logger.info if verbose else logger.debug
        st.sweep_durations = Observable("Sweep duration", "per-sweep wall time per report interval (s)")

        self.status = RunStatus.RUNNING
        start_time = clock.now()
        log("Started: %s", _stamp(start_time))
        run_t0 = clock.time()
        t0 = run_t0
        window_global = 0
        stopped = False
        current = 0

        try:
            for i in range(1, total + 1):
                current = i
                self.sweep()

                if p.global_moves and i % p.global_rate == 0:
                    self._global_move(st, i)
                    window_global += 1

                if i > p.thermalization:
                    model.measure_observables(st.obs, st.conf, st.energy)

                if p.energy_check_interval and i % p.energy_check_interval == 0:
                    self.check_energy()

                if i % interval == 0:
                    dur = (clock.time() - t0) / interval
                    self._report(st, i, dur, window_global, log)
                    window_global = 0
                    t0 = clock.time()

                if should_stop is not None and should_stop(i):
                    logger.warning("run stopped early at sweep %d/%d", i, total)
                    stopped = True
                    break

            st.obs.finalize(model.finish_observables)
        except Exception:
            self.status = RunStatus.FAILED
            logger.error("run aborted at sweep %d", current, exc_info=True)
            raise

        a.acc_rate = _ratio(a.acc_local, a.prop_local)
        a.acc_rate_global = _ratio(a.acc_global, a.prop_global)
        a.sweep_dur = st.sweep_durations.mean()

        end_time = clock.now()
        log("Ended: %s", _stamp(end_time))
        log("Duration: %.2f minutes", (clock.time() - run_t0) / 60.0)

        self.status = RunStatus.PARTIAL if stopped else RunStatus.COMPLETED
        return st.obs

    def _report(self, st: _MCState, i: int, dur: float, window_global: int, log) -> None:
        """区间报告：计算滚动接受率、记录计时，然后清零滚动计数。"""
        a = st.a
        a.acc_rate = a.acc_rate / self.p.report_interval
        a.acc_rate_global = _ratio(a.acc_rate_global, window_global)
        overall = _ratio(a.acc_global, a.prop_global)
        st.sweep_durations.add(dur)
        st.reports.append(ProgressReport(
            sweep=i, sweep_dur=dur, acc_rate=a.acc_rate,
            acc_rate_global=a.acc_rate_global, acc_rate_global_overall=overall,
        ))

        log("\t%d", i)
        log("\t\tsweep dur: %.3fs", dur)
        log("\t\tacc rate (local) : %.1f%%", a.acc_rate * 100)
        if self.p.global_moves:
            log("\t\tacc rate (global): %.1f%%", a.acc_rate_global * 100)
            log("\t\tacc rate (global, overall): %.1f%%", overall * 100)

        a.acc_rate = 0.0
        a.acc_rate_global = 0.0

    # -------------------------
    # 汇总
    # -------------------------
    def summary(self) -> Dict[str, Any]:
        st = self._require_state()
        out: Dict[str, Any] = {
            "status": self.status.value,
            "sweeps": self.p.sweeps,
            "thermalization": self.p.thermalization,
            "sweeps_done": st.sweep_count,
            "energy": st.energy,
            "seed": self.seed,
            "rng_model": rng_model(self.rng),
        }
        out.update(st.a.to_dict())
        return out

    def __repr__(self) -> str:
        return f"MC({self.model!r}, status={self.status.value})"
