"""JSONL run log written alongside each replay."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LogPaths:
    base: Path
    events: Path


class StructuredLogger:
    """Writes one JSONL record per replayed action."""

    def __init__(self, run_id: str, paths: LogPaths) -> None:
        self.run_id = run_id
        self.paths = paths
        self._step = 0
        self._events_file = paths.events.open("a", encoding="utf-8")

    def log_action(
        self,
        *,
        index: int,
        action_type: str,
        page_index: Optional[int],
        status: str,
        duration_ms: float,
        error: Optional[str] = None,
        code: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        self._step += 1
        payload = {
            "ts": time.time(),
            "run_id": self.run_id,
            "step": self._step,
            "index": index,
            "action_type": action_type,
            "page_index": page_index,
            "status": status,
            "error": error,
            "code": code,
            "duration_ms": round(duration_ms, 1),
            "metadata": metadata or {},
        }
        self._events_file.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
        self._events_file.flush()
        return self._step

    def close(self) -> None:
        try:
            self._events_file.close()
        except OSError:
            log.debug("Failed to close run log %s", self.paths.events, exc_info=True)


def prepare_log_paths(run_id: str, base_dir: Path) -> LogPaths:
    base_dir.mkdir(parents=True, exist_ok=True)
    return LogPaths(base=base_dir, events=base_dir / "events.jsonl")
