# examples/12_run_from_yaml.py
"""
从 YAML 配置文件读取参数运行模拟。
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    s = str(p)
    if s not in sys.path:
        sys.path.insert(0, s)

from classical_mc.models import make_model
from classical_mc.simulation.mc import MC
from classical_mc.utils.config import check_config, load_config, validate_config
from classical_mc.utils.logger import setup_logger, log_config, log_results


def main():
    # 1. 读取 YAML 配置并做一致性检查
    cfg = check_config(load_config(str(Path(__file__).parent / "configs" / "ising_L12.yaml")))
    log = setup_logger("classical_mc", log_file=cfg.log_file)
    ok, warnings = validate_config(cfg)
    for w in warnings:
        log.warning("[config warning] %s", w)
    log_config(log, cfg.to_dict())

    # 2. 构造模型与模拟器
    model = make_model(cfg.model.name, **cfg.model.params())
    mc = MC(model, cfg.simulation.to_parameters())
    mc.init(seed=cfg.simulation.seed)

    # 3. 运行
    obs = mc.run(verbose=cfg.simulation.verbose)

    log_results(log, {name: o.mean() for name, o in obs.items()}, title="观测量均值")


if __name__ == "__main__":
    main()
