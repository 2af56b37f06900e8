# PATH: config/__init__.py
"""
Configuration loading utilities for ARBSCAN.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml


CONFIG_DIR = Path(__file__).parent
SCANNER_CONFIG = CONFIG_DIR / "scanner.yaml"


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Absolute path, or a file name inside the config directory

    Returns:
        Parsed YAML as dict (empty dict for an empty file)
    """
    filepath = Path(path)
    if not filepath.is_absolute() and not filepath.exists():
        filepath = CONFIG_DIR / filepath
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
