from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable

from mythbuster.infra.db import DB


logger = logging.getLogger("quota")


@dataclass
class QuotaDecision:
    allowed: bool
    feature: str
    day: str
    count: int
    limit: int


class QuotaLedger:
    """Per-feature, per-UTC-day usage counter for the shared provider key.

    ``admit`` seeds the day's row and then increments it with a single conditional
    UPDATE, so the ceiling holds across threads and processes sharing the database.
    Rows from previous days are simply never read again.
    """

    def __init__(self, db: DB, now_fn: Callable[[], float] = time.time):
        self.db = db
        self.now_fn = now_fn

    def today(self) -> str:
        return datetime.fromtimestamp(self.now_fn(), tz=timezone.utc).strftime("%Y-%m-%d")

    def admit(self, feature: str, daily_limit: int) -> QuotaDecision:
        day = self.today()
        self.db.insert_ignore("quota_usage", ["feature", "day", "count"], (feature, day, 0))
        updated = self.db.execute(
            "UPDATE quota_usage SET count = count + 1 WHERE feature = ? AND day = ? AND count < ?",
            (feature, day, daily_limit),
        )
        count = self.usage(feature, day)
        allowed = updated == 1
        if allowed:
            logger.info("quota admit feature=%s day=%s count=%s/%s", feature, day, count, daily_limit)
        else:
            logger.warning("quota denied feature=%s day=%s count=%s/%s", feature, day, count, daily_limit)
        return QuotaDecision(allowed=allowed, feature=feature, day=day, count=count, limit=daily_limit)

    def usage(self, feature: str, day: str | None = None) -> int:
        row = self.db.fetchone(
            "SELECT count FROM quota_usage WHERE feature = ? AND day = ?",
            (feature, day or self.today()),
        )
        return int(row["count"]) if row else 0

    def snapshot(self, features: Iterable[str]) -> dict[str, int]:
        day = self.today()
        return {feature: self.usage(feature, day) for feature in features}
