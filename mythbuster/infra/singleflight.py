from __future__ import annotations

import threading
from typing import Any, Callable

from mythbuster.errors import ProviderTimeout


class SingleFlight:
    """Coalesces concurrent calls that share a key into one execution.

    The first caller for a key becomes the leader and runs ``fn``; callers that
    arrive while it is running block on the leader's event and receive the same
    result (or the same exception).
    """

    def __init__(self, wait_timeout: float = 60.0):
        self.wait_timeout = wait_timeout
        self._lock = threading.Lock()
        self._inflight: dict[str, dict[str, Any]] = {}

    def do(self, key: str, fn: Callable[[], Any]) -> tuple[Any, bool]:
        """Run ``fn`` once per in-flight ``key``. Returns ``(result, shared)``."""
        with self._lock:
            call = self._inflight.get(key)
            leader = call is None
            if leader:
                call = {"event": threading.Event(), "result": None, "error": None}
                self._inflight[key] = call

        if not leader:
            if not call["event"].wait(timeout=self.wait_timeout):
                raise ProviderTimeout("Timed out waiting for an identical request already in progress.")
            if call["error"] is not None:
                raise call["error"]
            return call["result"], True

        try:
            call["result"] = fn()
            return call["result"], False
        except BaseException as exc:
            call["error"] = exc
            raise
        finally:
            call["event"].set()
            with self._lock:
                self._inflight.pop(key, None)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._inflight)
