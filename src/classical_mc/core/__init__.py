# -*- coding: utf-8 -*-
"""
核心层
======

提供模型能力接口、观测量注册表、异常体系与随机数工具。

子模块
------
- model: 模型抽象基类（引擎只通过它与物理模型交互）
- observables: Observable / ObservableRegistry 与热力学估计量
- errors: 异常体系
- rng: 模拟实例自有的 numpy.random.Generator 构造

示例
----
>>> from classical_mc.core.observables import ObservableRegistry
>>> obs = ObservableRegistry.from_names(["E", "M"])
>>> obs["E"].add(-1.5)
"""

# classical_mc/core/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["model", "observables", "errors", "rng"]

_lazy = {
    "model": ".model",
    "observables": ".observables",
    "errors": ".errors",
    "rng": ".rng",
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
    from . import model, observables, errors, rng
