from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

_LOG = logging.getLogger("storyboard_fanout.telemetry")
_EVENTS: List[Dict[str, Any]] = []


def emit_event(name: str, payload: Optional[Dict[str, Any]] = None) -> None:
    """Record a telemetry event in-process and optionally append it to a log file.

    Tests inspect `get_events()` to verify expected emissions. When
    `STORYBOARD_TELEMETRY_LOG` is set each event is also written there as one
    JSON line.
    """
    ev: Dict[str, Any] = {"name": name, "payload": payload or {}}
    _EVENTS.append(ev)
    log_path = os.environ.get("STORYBOARD_TELEMETRY_LOG")
    if log_path:
        try:
            with open(log_path, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(ev, ensure_ascii=False) + "\n")
        except OSError as exc:
            _LOG.debug("telemetry log write failed: %s", exc)


def get_events() -> List[Dict[str, Any]]:
    """Return a copy of recorded events."""
    return list(_EVENTS)


def clear_events() -> None:
    _EVENTS.clear()
