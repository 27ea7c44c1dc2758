"""Configuration loading from ``rtformula.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE = "rtformula.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "strict": False,
    "declared": None,  # list of names; None skips the variable check
    "variables": {},
    "log_dir": None,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, with defaults.

    Args:
        path: A YAML file, or a directory containing ``rtformula.yaml``.
            None (or a missing file) yields the defaults.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file does not hold a mapping, or a known key
            has the wrong shape.
    """
    config = dict(DEFAULT_CONFIG)
    config["variables"] = {}
    if path is None:
        return config

    config_path = path / CONFIG_FILE if path.is_dir() else path
    if not config_path.exists():
        return config

    user_config = yaml.safe_load(config_path.read_text()) or {}
    if not isinstance(user_config, dict):
        raise ValueError(f"{config_path}: expected a mapping at top level")
    config.update(user_config)

    variables = config.get("variables") or {}
    if not isinstance(variables, dict):
        raise ValueError(f"{config_path}: 'variables' must be a mapping")
    config["variables"] = {str(k): float(v) for k, v in variables.items()}

    declared = config.get("declared")
    if declared is not None:
        if not isinstance(declared, list):
            raise ValueError(f"{config_path}: 'declared' must be a list of names")
        config["declared"] = [str(name) for name in declared]

    config["strict"] = bool(config.get("strict", False))
    return config


def configure_logging(config: dict[str, Any], base_dir: Path | None = None) -> None:
    """Point the event sink at ``log_dir`` from *config*, if set.

    A relative ``log_dir`` is resolved against *base_dir* (the directory
    of the config file) when given.
    """
    from rtformula.logging.events import set_log_dir

    log_dir = config.get("log_dir")
    if not log_dir:
        return
    target = Path(log_dir)
    if not target.is_absolute() and base_dir is not None:
        target = base_dir / target
    tb = config.get("logging_tail_bytes")
    set_log_dir(
        target,
        fsync=bool(config.get("logging_fsync", False)),
        tail_bytes=int(tb) if tb is not None else None,
    )
