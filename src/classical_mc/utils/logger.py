# -*- coding: utf-8 -*-
"""
日志记录器

实现功能：
    - setup_logger: 控制台（TTY 时彩色）+ 可选文件（按大小或按时间轮转）；
      重复调用会替换同名 logger 的 handlers，避免重复输出。
    - get_logger: 获取 logger，不自动配置 handlers（库模块只调用它）。
    - log_config / log_results: 以 YAML 形式逐行输出配置，输出运行结果摘要块。

库代码（classical_mc.simulation 等）只通过 logging.getLogger(__name__) 记录，
是否输出由应用（命令行或用户脚本）调用 setup_logger 决定。
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

__all__ = ['setup_logger', 'get_logger', 'log_config', 'log_results', 'ColoredFormatter']

# -----------------------------------------------------------------------------
# Colored terminal formatter (only affects console handler)
# -----------------------------------------------------------------------------
class ColoredFormatter(logging.Formatter):
    """
    控制台彩色格式化器：只临时改写 levelname，格式化后恢复，
    不对 record 做持久修改（同一 record 还会交给文件 handler）。
    """
    COLORS = {
        'DEBUG': '\033[36m',    # cyan
        'INFO': '\033[32m',     # green
        'WARNING': '\033[33m',  # yellow
        'ERROR': '\033[31m',    # red
        'CRITICAL': '\033[35m', # magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        orig_levelname = record.levelname
        try:
            color = self.COLORS.get(orig_levelname)
            if color:
                record.levelname = f"{color}{orig_levelname}{self.RESET}"
            return super().format(record)
        finally:
            record.levelname = orig_levelname

# -----------------------------------------------------------------------------
# Handler 工厂
# -----------------------------------------------------------------------------
_DATEFMT = '%Y-%m-%d %H:%M:%S'

def _make_console_handler(level: int, use_color: bool, utc: bool, stream=None) -> logging.Handler:
    if use_color:
        formatter: logging.Formatter = ColoredFormatter('%(asctime)s | %(levelname)s | %(message)s', datefmt=_DATEFMT)
    else:
        formatter = logging.Formatter('%(asctime)s | %(levelname)-8s | %(message)s', datefmt=_DATEFMT)
    if utc:
        formatter.converter = time.gmtime  # type: ignore
    ch = logging.StreamHandler(stream if stream is not None else sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(formatter)
    return ch

def _make_file_handler(log_path: Path, rotate: Optional[Dict[str, Any]], utc: bool) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    if rotate:
        if 'when' in rotate:
            fh: logging.Handler = TimedRotatingFileHandler(
                str(log_path),
                when=rotate.get('when', 'D'),
                interval=int(rotate.get('interval', 1)),
                backupCount=int(rotate.get('backupCount', 14)),
                encoding='utf-8',
                utc=utc,
            )
        else:
            fh = RotatingFileHandler(
                str(log_path),
                maxBytes=int(rotate.get('maxBytes', 10_000_000)),
                backupCount=int(rotate.get('backupCount', 5)),
                encoding='utf-8',
            )
    else:
        fh = logging.FileHandler(str(log_path), mode='a', encoding='utf-8')
    fh.setLevel(logging.DEBUG)  # 文件保留详细记录；是否发出由 logger.level 控制
    formatter = logging.Formatter('%(asctime)s | %(levelname)-8s | %(name)s | %(message)s', datefmt=_DATEFMT)
    if utc:
        formatter.converter = time.gmtime  # type: ignore
    fh.setFormatter(formatter)
    return fh

# -----------------------------------------------------------------------------
# setup_logger / get_logger
# -----------------------------------------------------------------------------
def setup_logger(
    name: str = 'classical_mc',
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_color: bool = True,
    utc: bool = False,
    rotate: Optional[Dict[str, Any]] = None,
    stream=None,
) -> logging.Logger:
    """
    配置并返回 logger。重复调用会关闭并替换同名 logger 的 handlers。
    rotate: {'when': 'D', 'interval': 1, 'backupCount': 7} 按时间轮转，
            {'maxBytes': ..., 'backupCount': ...} 按大小轮转。
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False

    # 仅在真实终端时启用颜色
    out = stream if stream is not None else sys.stdout
    use_color = bool(use_color and hasattr(out, "isatty") and out.isatty())

    logger.addHandler(_make_console_handler(level, use_color, utc, stream=out))
    if log_file:
        logger.addHandler(_make_file_handler(Path(log_file), rotate, utc))
    return logger

def get_logger(name: str = 'classical_mc') -> logging.Logger:
    """获取 logger（若未 setup，返回同名 logger 对象，但不自动配置 handlers）。"""
    return logging.getLogger(name)

# -----------------------------------------------------------------------------
# 配置 / 结果输出
# -----------------------------------------------------------------------------
def log_config(logger: logging.Logger, config: dict) -> None:
    """YAML 形式逐行 INFO 输出，保持对齐。"""
    logger.info("配置参数:")
    dumped = yaml.safe_dump(config, allow_unicode=True, sort_keys=False)
    for line in dumped.rstrip().splitlines():
        logger.info("  %s", line)

def log_results(logger: logging.Logger, results: dict, title: str = "运行结果") -> None:
    logger.info("=" * 70)
    logger.info("%s:", title)
    for k, v in results.items():
        if isinstance(v, float):
            logger.info("  %s: %.6f", k, v)
        else:
            logger.info("  %s: %s", k, v)
    logger.info("=" * 70)
