# -*- coding: utf-8 -*-
"""
工具层
======

- logger: 日志配置（控制台彩色输出、文件轮转、配置/结果摘要）
- config: 分层配置（预设 < 文件 < 环境变量 < 命令行）

示例
----
>>> from classical_mc.utils.logger import setup_logger
>>> log = setup_logger(level=20)
>>> from classical_mc.utils.config import get_preset_config
>>> cfg = get_preset_config("quick")
"""

# classical_mc/utils/__init__.py
from importlib import import_module
from typing import TYPE_CHECKING

__all__ = ["logger", "config"]

_lazy = {
    "logger": ".logger",
    "config": ".config",
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
    from . import logger, config
