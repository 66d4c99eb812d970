"""
labor_ts/orchestration

Pipeline orchestration and report tables.

This module provides:
- AnalysisPipeline: runs every analysis over an observation panel
- SectorResult / PipelineResult: result containers (one Outcome per analysis)
- build_tables: flat pandas tables for export
"""

from .pipeline import (
    AnalysisPipeline,
    PipelineResult,
    SectorResult,
    analyze_sector,
)
from .report import TABLE_NAMES, build_tables, sector_tables

__all__ = [
    "AnalysisPipeline",
    "PipelineResult",
    "SectorResult",
    "analyze_sector",
    "TABLE_NAMES",
    "build_tables",
    "sector_tables",
]
