"""Shared helpers: logging setup and per-sector parallel execution."""

from .logging import setup_logging, get_logger
from .parallel import run_parallel, get_optimal_workers

__all__ = ["setup_logging", "get_logger", "run_parallel", "get_optimal_workers"]
