# -*- coding: utf-8 -*-
"""
命令行入口：按分层配置运行参考 Ising 模型并输出观测量摘要。

    classical-mc --preset quick --set model.beta=0.44 --set simulation.seed=1
    python -m classical_mc --config run.yaml --log-file logs/run.log
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .models import make_model
from .simulation.mc import MC
from .utils.config import build_arg_parser, config_from_namespace
from .utils.logger import setup_logger, log_config, log_results

__all__ = ["main"]


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_arg_parser(description="Run a classical Metropolis Monte Carlo simulation")
    ap.add_argument('--log-file', type=str, default=None, help='also write the log to this file')
    ap.add_argument('--quiet', action='store_true', help='only log warnings and errors')
    ns = ap.parse_args(args=argv)

    level = logging.WARNING if ns.quiet else logging.INFO
    log = setup_logger('classical_mc', level=level)
    cfg = config_from_namespace(ns)
    log_file = ns.log_file or cfg.log_file
    if log_file:
        log = setup_logger('classical_mc', level=level, log_file=log_file)
    log_config(log, cfg.to_dict())

    sim_cfg = cfg.simulation
    model = make_model(cfg.model.name, **cfg.model.params())
    mc = MC(model, sim_cfg.to_parameters())
    mc.init(seed=sim_cfg.seed)
    obs = mc.run(verbose=sim_cfg.verbose)

    log_results(log, mc.summary(), title="运行统计")
    results = {}
    for name, o in obs.items():
        results[name] = o.mean()
        if len(o) > 1:
            results[f"{name}_err"] = o.error()
    log_results(log, results, title="观测量")
    return 0
