from __future__ import annotations

"""Minimal tracing helpers (Explain Mode).

Enable with the CLI --explain flag; milestones are printed as one-line JSON.
"""

import json
from typing import Any, Dict

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    # datetimes and other records fall back to str()
    line = json.dumps(payload or {}, separators=(",", ":"), default=str)
    print(f"[EXPLAIN] {event} :: {line}")
