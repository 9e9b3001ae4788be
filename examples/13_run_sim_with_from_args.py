# examples/13_run_sim_with_from_args.py
"""
使用 from_args() + 命令行 --preset / --config / --set / ENV 来驱动模拟。

    python examples/13_run_sim_with_from_args.py --preset quick --set model.beta=0.5
    CMC__model__L=24 python examples/13_run_sim_with_from_args.py --preset standard
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
from classical_mc.utils.config import from_args
from classical_mc.utils.logger import setup_logger


def main():
    setup_logger("classical_mc")
    cfg = from_args()  # 会解析 --preset / --config / --set / ENV 等

    model = make_model(cfg.model.name, **cfg.model.params())
    mc = MC(model, cfg.simulation.to_parameters()).init(seed=cfg.simulation.seed)
    obs = mc.run(verbose=cfg.simulation.verbose)

    print("Run finished:", mc.status.value)
    print(f"  <|m|> = {obs['m'].mean():.4f} ± {obs['m'].error():.4f}")
    print(f"  <e>   = {obs['e'].mean():.4f} ± {obs['e'].error():.4f}")
    print(f"  U     = {obs['U'].mean():.4f}")


if __name__ == "__main__":
    main()
