# PATH: strategy/__init__.py
"""Strategy package for ARBSCAN: cost model, detectors and scan orchestration."""

from strategy.direct import DirectDetector, calculate_direct_profit
from strategy.gas import GasCostModel
from strategy.scanner import ScanOrchestrator, ScanSummary, build_scanner
from strategy.triangular import TriangularDetector, calculate_triangular_profit

__all__ = [
    "DirectDetector",
    "GasCostModel",
    "ScanOrchestrator",
    "ScanSummary",
    "TriangularDetector",
    "build_scanner",
    "calculate_direct_profit",
    "calculate_triangular_profit",
]
