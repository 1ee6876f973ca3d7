from __future__ import annotations

"""Explain Mode: one-line trace records at grading, hint and award milestones.

Off by default. ``fungitrainer run --explain`` (or ``session.explain: true``)
turns it on; records go to stderr unless another stream is given.
"""

import json
import sys
from typing import Any, Dict, Optional, TextIO

_ENABLED = False
_STREAM: Optional[TextIO] = None


def enable(flag: bool = True, stream: Optional[TextIO] = None) -> None:
    global _ENABLED, _STREAM
    _ENABLED = bool(flag)
    _STREAM = stream


def enabled() -> bool:
    return _ENABLED


def trace(event: str, payload: Optional[Dict[str, Any]] = None) -> None:
    """Emit ``[EXPLAIN] event :: {json}``; non-JSON values are stringified."""
    if not _ENABLED:
        return
    line = f"[EXPLAIN] {event}"
    if payload:
        line += " :: " + json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str)
    print(line, file=_STREAM or sys.stderr)
