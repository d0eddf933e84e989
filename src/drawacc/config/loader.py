"""Configuration loader from YAML.

A user file only needs the keys it changes: it is merged section by section
over the bundled defaults.yaml. Lists, such as the contributor schedule,
replace the default list whole.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .schema import Config

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def _read_yaml(path) -> Dict[str, Any]:
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge override values into a copy of a base mapping.

    Args:
        base: Default values
        overrides: Values to lay over the defaults; nested mappings merge,
            anything else replaces

    Returns:
        New merged mapping
    """
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(yaml_path: Optional[str] = None) -> Config:
    """
    Load configuration, laying an optional YAML file over the defaults.

    Args:
        yaml_path: Path to a full or partial YAML config (defaults only if None)

    Returns:
        Config object
    """
    data = _read_yaml(DEFAULTS_PATH)
    if yaml_path is not None:
        data = merge_overrides(data, _read_yaml(yaml_path))
    return Config.from_dict(data)
