# examples/00_quick_start.py
"""
Quick start: 最简单的单链 Metropolis 示例

- 二维 Ising，L=16，β 取临界点附近
- 每 5 个 sweep 做一次 Wolff 簇更新
- 不依赖 Config 系统，直接用裸参数
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    s = str(p)
    if s not in sys.path:
        sys.path.insert(0, s)

from classical_mc.models.ising import IsingModel
from classical_mc.simulation.mc import MC, MCParameters
from classical_mc.utils.logger import setup_logger


def main():
    setup_logger("classical_mc")

    model = IsingModel(dims=2, L=16, beta=0.44)
    params = MCParameters(global_moves=True, global_rate=5, report_interval=500)
    mc = MC(model, params)
    mc.init(seed=42)

    obs = mc.run(sweeps=2000, thermalization=500)

    print("\nObservables:")
    for name in ("e", "m", "C", "χ", "U"):
        o = obs[name]
        if len(o) > 1:
            print(f"  {name:>2} = {o.mean():.5f} ± {o.error():.5f}  (tau = {o.tau():.1f})")
        else:
            print(f"  {name:>2} = {o.mean():.5f}")

    a = mc.a
    print(f"\nlocal acceptance  = {a.acc_rate:.3f}")
    print(f"global acceptance = {a.acc_rate_global:.3f}  ({a.acc_global}/{a.prop_global})")


if __name__ == "__main__":
    main()
