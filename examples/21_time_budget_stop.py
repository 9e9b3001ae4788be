# examples/21_time_budget_stop.py
"""
提前停止：给定墙钟时间预算，到时后结束运行（状态 PARTIAL），
已记录的测量照常 finalize 并可分析。
"""

from __future__ import annotations

import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for p in (ROOT, ROOT / "src"):
    s = str(p)
    if s not in sys.path:
        sys.path.insert(0, s)

from classical_mc.models.ising import IsingModel
from classical_mc.simulation.mc import MC, MCParameters
from classical_mc.utils.logger import setup_logger


def main(budget_s: float = 5.0):
    setup_logger("classical_mc")

    mc = MC(IsingModel(dims=3, L=8, beta=0.2216), MCParameters(global_moves=True, global_rate=1, report_interval=200))
    mc.init(seed=7)

    deadline = time.monotonic() + budget_s
    obs = mc.run(sweeps=1_000_000, thermalization=200, should_stop=lambda i: time.monotonic() > deadline)

    s = mc.summary()
    print(f"status = {s['status']}, sweeps done = {s['sweeps_done']}")
    print(f"<|m|> = {obs['m'].mean():.4f} ± {obs['m'].error():.4f} from {len(obs['m'])} measurements")


if __name__ == "__main__":
    main()
