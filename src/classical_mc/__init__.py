# -*- coding: utf-8 -*-
"""
Classical Monte Carlo Engine
============================

通用的经典蒙特卡洛（Metropolis）格点模拟引擎。

引擎本身与具体物理模型无关：sweep、接受判据、接受率统计与观测量生命周期
由引擎负责；能量函数、局域/全局更新与测量定义由可插拔的模型提供。

主要功能
--------
- 单链、单线程 Metropolis sweep（能量增量维护，严格与接受/拒绝一致）
- 全局更新钩子（每 global_rate 个 sweep 调用一次）
- 热化 + 测量两阶段运行控制，周期性进度报告
- 观测量注册表：追加式记录、一次性 finalize、自相关/分块误差分析
- 参考模型：d 维超立方 Ising（Metropolis 局域翻转 + Wolff 全局簇更新）

快速开始
--------
>>> from classical_mc.models.ising import IsingModel
>>> from classical_mc.simulation.mc import MC
>>> mc = MC(IsingModel(dims=2, L=8, beta=0.44))
>>> mc.init(seed=42)
>>> obs = mc.run(verbose=False, sweeps=2000, thermalization=500)
>>> obs["m"].mean()

模块组织
--------
- core: 模型接口、观测量、异常、随机数
- simulation: 运行控制与 sweep
- models: 参考模型
- analysis: 时间序列误差分析
- utils: 日志与配置工具
"""

# classical_mc/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

try:
    from importlib.metadata import version as _pkg_version, PackageNotFoundError
    __version__ = _pkg_version("classical-mc")
except PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "core",
    "simulation",
    "models",
    "analysis",
    "utils",
    "__version__",
]

_lazy_subpackages = {
    "core": ".core",
    "simulation": ".simulation",
    "models": ".models",
    "analysis": ".analysis",
    "utils": ".utils",
}

def __getattr__(name: str):
    if name in _lazy_subpackages:
        mod = import_module(_lazy_subpackages[name], __name__)
        globals()[name] = mod  # cache
        return mod
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(__all__))

if TYPE_CHECKING:  # for IDE/static type checkers only
    from . import core, simulation, models, analysis, utils
