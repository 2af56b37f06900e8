# PATH: strategy/jobs/__init__.py
"""
Strategy jobs package.

Available entry points:
    python -m strategy.jobs.run_scan scan     # Periodic scanner
    python -m strategy.jobs.run_scan report   # Stored opportunities

NOTE: This __init__.py intentionally does NOT import run_scan, to avoid
loading click and the store when importing the package.
"""

__all__: list[str] = []
