#!/usr/bin/env python3
"""Request counters and timers for the diff service, appended as JSONL.

Lines look like ``{"ts":..,"metric":"cache.hit","value":1,"repo":"o/r"}``.
Recording is best-effort: an unwritable metrics directory never fails a
request.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict

from configs.config import Config

logger = logging.getLogger(__name__)

MAX_LABEL_CHARS = 200


def _path() -> Path:
    root = Path(Config.observability()["metrics_root"])
    root.mkdir(parents=True, exist_ok=True)
    return root / "metrics.log"


def _record(name: str, value: Any, labels: Dict[str, Any]) -> Dict[str, Any]:
    rec: Dict[str, Any] = {"ts": int(time.time()), "metric": name, "value": value}
    for k, v in labels.items():
        if isinstance(v, str) and len(v) > MAX_LABEL_CHARS:
            v = v[:MAX_LABEL_CHARS] + "..."
        rec[k] = v
    return rec


def incr(name: str, value: Any = 1, **labels) -> None:
    if not Config.observability()["metrics_enabled"]:
        return
    line = json.dumps(_record(name, value, labels), separators=(",", ":")) + "\n"
    try:
        with open(_path(), "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        logger.debug(f"Metric {name} not recorded: {e}")


class Timer:
    """Context manager recording ``<name>.latency_s`` on exit, errors included."""

    def __init__(self, name: str, **labels):
        self.name = name
        self.labels = labels
        self.elapsed = 0.0
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = time.perf_counter() - self._t0
        incr(f"{self.name}.latency_s", value=round(self.elapsed, 6), ok=exc_type is None, **self.labels)
        return False
