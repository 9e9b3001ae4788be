# -*- coding: utf-8 -*-
"""
参考模型
========

- ising: d 维超立方 Ising 模型（周期边界）

`make_model(name, **params)` 按名称构造模型，供配置/命令行使用。
"""

# classical_mc/models/__init__.py
from typing import Any, Dict, Type

from ..core.model import Model
from .ising import IsingModel

__all__ = ["IsingModel", "MODELS", "normalize_model_name", "make_model"]

MODELS: Dict[str, Type[Model]] = {
    "ising": IsingModel,
}


def normalize_model_name(name: str) -> str:
    s = str(name).strip().lower().replace("-", "_").replace(" ", "_")
    if s in ("ising", "ising_model", "isingmodel"):
        return "ising"
    return s


def make_model(name: str, **params: Any) -> Model:
    key = normalize_model_name(name)
    if key not in MODELS:
        raise ValueError(f"Unknown model: {name!r} (normalized -> {key!r}). Known models: {list(MODELS)}")
    return MODELS[key](**params)
