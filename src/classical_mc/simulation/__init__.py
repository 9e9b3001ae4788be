# -*- coding: utf-8 -*-
"""
模拟层
======

运行控制与 sweep 引擎。

子模块
------
- mc: MC 模拟器（参数、统计、sweep、run）

示例
----
>>> from classical_mc.simulation.mc import MC, MCParameters
>>> mc = MC(model, MCParameters(global_moves=True, global_rate=10))
>>> mc.init(seed=7)
>>> obs = mc.run(verbose=False)
"""

# classical_mc/simulation/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["mc"]

_lazy = {
    "mc": ".mc",
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
    from . import mc
