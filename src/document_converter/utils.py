from __future__ import annotations

import hashlib
import os
import re
import tempfile
import time
from pathlib import Path


SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def slugify(value: str, max_length: int = 120) -> str:
    normalized = SAFE_FILENAME_RE.sub("-", value.strip())
    normalized = re.sub("-+", "-", normalized)
    normalized = normalized.replace("-.", ".")
    normalized = normalized.strip("-._")
    if not normalized:
        normalized = "file"
    if len(normalized) > max_length:
        normalized = normalized[:max_length]
    return normalized


def generate_run_id(prefix: str = "conv") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, data.encode(encoding))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def normalize_newlines(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.splitlines()) + "\n"


def parse_key_values(pairs: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for item in pairs:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected key=value, got {item!r}")
        values[key.strip()] = value
    return values
