# -*- coding: utf-8 -*-
"""
统一配置管理（预设、分层覆盖、参数校验）

实现功能：
    - SimulationConfig: 运行参数（sweeps/thermalization/全局更新/报告区间/种子）
    - ModelConfig: 模型名称与物理参数（dims, L, beta, J, h）
    - 预设: quick / standard / critical
    - YAML/JSON 读写
    - 环境变量覆盖：CMC__simulation__sweeps=5000
    - 命令行覆盖：--set simulation.sweeps=5000
    - validate_config() 只返回 warnings 列表；单字段硬约束在 __post_init__ 中抛 ValueError，
      跨字段硬约束由 check_config() 在合并完成后检查

合并优先级：默认/预设 < 文件 < 环境变量 < CLI --set
"""

from __future__ import annotations

import argparse
import ast
import copy
import json
import logging
import math
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..models import normalize_model_name, MODELS
from ..simulation.mc import MCParameters

logger = logging.getLogger(__name__)

__all__ = [
    'Config', 'SimulationConfig', 'ModelConfig',
    'load_config', 'save_config', 'get_preset_config',
    'load_from_env', 'merge_configs', 'check_config', 'validate_config',
    'build_arg_parser', 'config_from_namespace', 'from_args',
]

_FLOAT_TOL = 1e-12
BETA_CRITICAL_2D = 0.5 * math.log(1.0 + math.sqrt(2.0))  # 二维 Ising 临界点 β_c ≈ 0.4407

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _deep_merge(d1: Dict[str, Any], d2: Dict[str, Any]) -> Dict[str, Any]:
    """将 d2 深度合并到 d1（原地修改 d1 并返回它）。"""
    for k, v in (d2 or {}).items():
        if k in d1 and isinstance(d1[k], dict) and isinstance(v, dict):
            _deep_merge(d1[k], v)
        else:
            d1[k] = v
    return d1

def _set_by_path(d: Dict[str, Any], path: List[str], value: Any) -> None:
    cur = d
    for key in path[:-1]:
        if key not in cur or not isinstance(cur[key], dict):
            cur[key] = {}
        cur = cur[key]
    cur[path[-1]] = value

def _parse_value(s: str) -> Any:
    """字符串 -> Python 值（literal_eval 优先，兼容 true/false/none）。"""
    try:
        return ast.literal_eval(s)
    except (ValueError, SyntaxError):
        sl = s.strip().lower()
        if sl == 'true':
            return True
        if sl == 'false':
            return False
        if sl in ('none', 'null'):
            return None
        return s.strip()

# -----------------------------------------------------------------------------
# Dataclasses
# -----------------------------------------------------------------------------
@dataclass
class SimulationConfig:
    sweeps: int = 1000
    thermalization: int = 0
    global_moves: bool = False
    global_rate: int = 5
    report_interval: int = 1000
    energy_check_interval: int = 0

    seed: Optional[int] = None
    verbose: bool = True

    def __post_init__(self):
        # 数值约束统一由 MCParameters 校验
        self.to_parameters()
        if self.seed is not None and not isinstance(self.seed, int):
            raise ValueError(f"seed must be an integer or None (got {self.seed!r})")

    def to_parameters(self) -> MCParameters:
        return MCParameters(
            global_moves=self.global_moves,
            global_rate=self.global_rate,
            thermalization=self.thermalization,
            sweeps=self.sweeps,
            report_interval=self.report_interval,
            energy_check_interval=self.energy_check_interval,
        )

@dataclass
class ModelConfig:
    name: str = 'ising'
    dims: int = 2
    L: int = 16
    beta: float = 0.4
    J: float = 1.0
    h: float = 0.0

    def __post_init__(self):
        self.name = normalize_model_name(self.name)
        if self.name not in MODELS:
            raise ValueError(f"Unknown model: {self.name!r}. Use one of {list(MODELS)}.")
        if not (isinstance(self.dims, int) and 1 <= self.dims <= 3):
            raise ValueError(f"dims must be 1, 2 or 3 (got {self.dims!r})")
        if not (isinstance(self.L, int) and self.L >= 2):
            raise ValueError(f"L must be an integer >= 2 (got {self.L!r})")
        if float(self.beta) < 0:
            raise ValueError(f"beta must be non-negative (got {self.beta!r})")

    def params(self) -> Dict[str, Any]:
        return {'dims': self.dims, 'L': self.L, 'beta': float(self.beta), 'J': float(self.J), 'h': float(self.h)}

@dataclass
class Config:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    model: ModelConfig = field(default_factory=ModelConfig)

    project_name: str = 'classical_mc'
    log_file: Optional[str] = None
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'simulation': asdict(self.simulation),
            'model': asdict(self.model),
            'project_name': self.project_name,
            'log_file': self.log_file,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Config':
        d = d or {}
        unknown = set(d) - {'simulation', 'model', 'project_name', 'log_file', 'version'}
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")
        return cls(
            simulation=SimulationConfig(**(d.get('simulation') or {})),
            model=ModelConfig(**(d.get('model') or {})),
            project_name=d.get('project_name', 'classical_mc'),
            log_file=d.get('log_file'),
            version=int(d.get('version', 1)),
        )

# -----------------------------------------------------------------------------
# I/O
# -----------------------------------------------------------------------------
def _load_raw(filepath: str) -> Dict[str, Any]:
    """读取配置文件为 nested dict（不补默认值，用于分层合并）。"""
    p = Path(filepath)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")
    suf = p.suffix.lower()
    with open(p, 'r', encoding='utf-8') as f:
        if suf in ('.yaml', '.yml'):
            cfg = yaml.safe_load(f) or {}
        elif suf == '.json':
            cfg = json.load(f) or {}
        else:
            raise ValueError(f"Unsupported config file extension: {suf}")
    if not isinstance(cfg, dict):
        raise ValueError(f"Config file must contain a mapping: {filepath}")
    return cfg

def load_config(filepath: str) -> Config:
    """从 YAML 或 JSON 文件加载配置。"""
    return Config.from_dict(_load_raw(filepath))

def save_config(config: Config, filepath: str, format: Optional[str] = None) -> Path:
    """保存为 YAML 或 JSON；默认按后缀判断（未知后缀用 YAML）。"""
    p = Path(filepath)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    fmt = format or ('json' if p.suffix.lower() == '.json' else 'yaml')
    with open(p, 'w', encoding='utf-8') as f:
        if fmt == 'yaml':
            yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        elif fmt == 'json':
            json.dump(data, f, indent=2, ensure_ascii=False)
        else:
            raise ValueError(f"Unsupported format: {fmt}")
    logger.info("Config saved: %s", p)
    return p

# -----------------------------------------------------------------------------
# Presets
# -----------------------------------------------------------------------------
_PRESETS: Dict[str, Config] = {
    'quick': Config(
        simulation=SimulationConfig(sweeps=2000, thermalization=500, report_interval=500),
        model=ModelConfig(dims=2, L=8, beta=0.3),
    ),
    'standard': Config(
        simulation=SimulationConfig(sweeps=20000, thermalization=5000, global_moves=True, global_rate=5),
        model=ModelConfig(dims=2, L=16, beta=0.4),
    ),
    'critical': Config(
        simulation=SimulationConfig(sweeps=50000, thermalization=10000, global_moves=True, global_rate=1),
        model=ModelConfig(dims=2, L=32, beta=BETA_CRITICAL_2D),
    ),
}

def get_preset_config(name: str) -> Config:
    """返回内置预设配置的副本。"""
    if name not in _PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {list(_PRESETS)}")
    return copy.deepcopy(_PRESETS[name])

# -----------------------------------------------------------------------------
# Environment variables (nested via sep, e.g. CMC__simulation__sweeps=5000)
# -----------------------------------------------------------------------------
def load_from_env(prefix: str = 'CMC', sep: str = '__', environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    读取以 prefix+sep 开头的环境变量，返回嵌套 dict。
    例：CMC__model__L=32  → {'model': {'L': 32}}
    """
    env = os.environ if environ is None else environ
    out: Dict[str, Any] = {}
    pfx = prefix + sep
    for k, v in env.items():
        if not k.startswith(pfx):
            continue
        parts = [p for p in k[len(pfx):].split(sep) if p]
        if parts:
            _set_by_path(out, parts, _parse_value(v))
    return out

# -----------------------------------------------------------------------------
# Merge & validate
# -----------------------------------------------------------------------------
def merge_configs(base: Config, override: Dict[str, Any]) -> Config:
    """将 override（nested dict）深度合并到 base 的字典表示，返回新 Config。"""
    return Config.from_dict(_deep_merge(base.to_dict(), override or {}))

def check_config(cfg: Config) -> Config:
    """
    最终配置的跨字段硬约束（违反时抛 ValueError），在开始模拟前调用。
    只检查合并完成后的配置：中间层（如预设）允许暂时不一致。
    """
    sim, mod = cfg.simulation, cfg.model
    if sim.global_moves and abs(float(mod.h)) > _FLOAT_TOL:
        raise ValueError(
            f"simulation.global_moves=True requires model.h == 0 (Wolff cluster move), got h={mod.h}"
        )
    return cfg

def validate_config(cfg: Config) -> Tuple[bool, List[str]]:
    """跨字段一致性检查（只返回 issues，不抛错）。"""
    issues: List[str] = []
    sim, mod = cfg.simulation, cfg.model

    if sim.global_moves and float(mod.J) <= 0:
        issues.append("simulation.global_moves=True 但 model.J <= 0：Wolff 簇更新只对铁磁耦合有效，将总被拒绝")
    if sim.sweeps == 0:
        issues.append("simulation.sweeps=0：不会记录任何测量")
    if sim.report_interval > sim.thermalization + sim.sweeps > 0:
        issues.append("simulation.report_interval 大于总 sweep 数：不会产生进度报告与计时")
    if sim.seed is None:
        issues.append("simulation.seed 未设置：结果不可复现")
    return len(issues) == 0, issues

# -----------------------------------------------------------------------------
# CLI helpers
# -----------------------------------------------------------------------------
def _parse_cli_overrides(kv_list: List[str]) -> Dict[str, Any]:
    """解析 --set key=value（点分路径）。"""
    out: Dict[str, Any] = {}
    for kv in (kv_list or []):
        if '=' not in kv:
            raise ValueError(f"--set expects key=value pairs, got: {kv}")
        key, val = kv.split('=', 1)
        path = [p.strip() for p in key.split('.') if p.strip()]
        if path:
            _set_by_path(out, path, _parse_value(val))
    return out

def build_arg_parser(description: str = "Load & merge configuration") -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=description)
    ap.add_argument('--preset', type=str, choices=sorted(_PRESETS), help='preset name')
    ap.add_argument('--config', type=str, help='config file (yaml|json)')
    ap.add_argument('--env-prefix', type=str, default='CMC', help='environment variable prefix (default CMC)')
    ap.add_argument('--set', dest='sets', action='append', default=[],
                    help='override key=value (dot notation, can repeat)')
    return ap

def config_from_namespace(ns: argparse.Namespace) -> Config:
    """按优先级合并：默认/预设 <- 文件 <- 环境变量 <- --set。"""
    cfg = get_preset_config(ns.preset) if ns.preset else Config()
    if ns.config:
        cfg = merge_configs(cfg, _load_raw(ns.config))
    env_over = load_from_env(prefix=ns.env_prefix)
    if env_over:
        cfg = merge_configs(cfg, env_over)
    cli_over = _parse_cli_overrides(ns.sets)
    if cli_over:
        cfg = merge_configs(cfg, cli_over)
    check_config(cfg)

    ok, issues = validate_config(cfg)
    for it in issues:
        logger.warning("config: %s", it)
    return cfg

def from_args(args: Optional[List[str]] = None) -> Config:
    """从命令行参数加载并合并配置。"""
    return config_from_namespace(build_arg_parser().parse_args(args=args))
