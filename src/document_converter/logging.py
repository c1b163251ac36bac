from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class HopTiming:
    source: str
    target: str
    elapsed_ms: float


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    source: str
    target: str
    status: str
    hops: list[str]
    warnings: list[str]
    error_code: str | None
    stages: list[str]
    timings: list[HopTiming]
    size_bytes: int
    destination: str | None = None
    write_ms: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timings"] = [asdict(timing) for timing in self.timings]
        return payload


class RunLogger:
    """Appends one JSON object per conversion call to a JSONL file."""

    def __init__(self, log_file: Path) -> None:
        self._log_file = Path(log_file)
        self._lock = threading.Lock()

    @property
    def log_file(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock, self._log_file.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")


def read_log(log_file: Path) -> list[dict[str, Any]]:
    if not log_file.exists():
        return []
    with log_file.open("r", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]


__all__ = ["HopTiming", "RunLogEntry", "RunLogger", "read_log"]
