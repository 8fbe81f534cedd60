from __future__ import annotations

import hashlib
import json
from typing import Any


def stable_json_dumps(payload: Any) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def hash_block(payload: Any) -> str:
    raw = stable_json_dumps(payload)
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def call_summary(kind: str, cached: bool, latency_ms: int, error_code: str | None = None) -> str:
    """One-line log segment for an orchestrator call."""
    status = "err" if error_code else "ok"
    seg = f"{kind} {status} {latency_ms}ms hit={1 if cached else 0}"
    if error_code:
        seg += f" {error_code}"
    return seg
