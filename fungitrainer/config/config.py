from __future__ import annotations

"""Configuration loading and validation for fungitrainer.

This module loads YAML configuration, applies defaults, and validates
that thresholds and enumerations are sane. Bad values are reported with a
WARNING line and replaced by the default.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..errors import ConfigError

ALLOWED_DIFFICULTIES = {"all", "easy", "medium", "hard"}

DEFAULTS_PATH = Path(__file__).with_name("defaults.yml")


def load_yaml(path: Path) -> Any:
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    cfg = load_yaml(Path(path) if path else DEFAULTS_PATH)
    if not isinstance(cfg, dict):
        raise ConfigError(f"Config root must be a mapping: {path or DEFAULTS_PATH}")
    return cfg


def _warn(msg: str) -> None:
    print(f"WARNING: {msg}")


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    for section in ("grading", "hints", "achievements", "session", "storage"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    grading = cfg["grading"]
    hints = cfg["hints"]
    ach = cfg["achievements"]
    session = cfg["session"]
    storage = cfg["storage"]

    grading.setdefault("fuzzy_threshold", 0.85)
    grading.setdefault("penalty_per_hint", 5)
    grading.setdefault("max_penalty", 40)
    hints.setdefault("max_hints", 4)
    ach.setdefault("catalog_path", None)
    ach.setdefault("genus_accuracy_threshold", 90)
    ach.setdefault("genus_min_attempts", 1)
    session.setdefault("difficulty", "all")
    session.setdefault("questions", 10)
    session.setdefault("explain", False)
    storage.setdefault("data_dir", "./fungi_data")
    storage.setdefault("progress_db", "progress.db")

    try:
        thr = float(grading["fuzzy_threshold"])
    except (TypeError, ValueError):
        thr = -1.0
    if not 0.0 < thr < 1.0:
        _warn(f"fuzzy_threshold '{grading['fuzzy_threshold']}' must be in (0, 1), using 0.85.")
        thr = 0.85
    grading["fuzzy_threshold"] = thr

    for key, default in (("penalty_per_hint", 5), ("max_penalty", 40)):
        try:
            val = int(grading[key])
        except (TypeError, ValueError):
            val = -1
        if val < 0:
            _warn(f"{key} '{grading[key]}' must be a non-negative integer, using {default}.")
            val = default
        grading[key] = val

    try:
        max_hints = int(hints["max_hints"])
    except (TypeError, ValueError):
        max_hints = 0
    if max_hints < 1:
        _warn(f"max_hints '{hints['max_hints']}' must be >= 1, using 4.")
        max_hints = 4
    hints["max_hints"] = max_hints

    try:
        acc = int(ach["genus_accuracy_threshold"])
    except (TypeError, ValueError):
        acc = -1
    if not 0 <= acc <= 100:
        _warn(f"genus_accuracy_threshold '{ach['genus_accuracy_threshold']}' must be 0..100, using 90.")
        acc = 90
    ach["genus_accuracy_threshold"] = acc

    difficulty = str(session.get("difficulty")).lower()
    if difficulty not in ALLOWED_DIFFICULTIES:
        _warn(f"Unsupported difficulty '{session.get('difficulty')}', using 'all'.")
        difficulty = "all"
    session["difficulty"] = difficulty

    try:
        session["questions"] = max(int(session["questions"]), 1)
    except (TypeError, ValueError):
        _warn(f"questions '{session['questions']}' is not a number, using 10.")
        session["questions"] = 10
    session["explain"] = bool(session.get("explain", False))

    return cfg
