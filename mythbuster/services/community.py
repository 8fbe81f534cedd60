from __future__ import annotations

import logging
import re

from mythbuster.errors import InputValidationError
from mythbuster.infra.cache import now_iso
from mythbuster.infra.db import DB
from mythbuster.models import ActionResult


logger = logging.getLogger("community")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DUPLICATE_EMAIL = "This email has already been registered for the community."


def save_signup(db: DB, name: str | None, email: str | None) -> ActionResult:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise InputValidationError("email" if name else "name", "Name and email are required")
    if not EMAIL_RE.match(email):
        raise InputValidationError("email", "Invalid email format")
    inserted = db.insert_ignore("community_signups", ["email", "name", "created_at"], (email, name, now_iso()))
    if inserted == 0:
        logger.info("duplicate community signup for %s", email)
        return ActionResult(success=False, error=DUPLICATE_EMAIL)
    logger.info("community signup stored")
    return ActionResult(success=True, message="Signed up successfully")


def list_signups(db: DB) -> list[dict]:
    return db.fetchall("SELECT name, email, created_at FROM community_signups ORDER BY created_at DESC")


def signup_count(db: DB) -> int:
    row = db.fetchone("SELECT COUNT(*) AS total FROM community_signups")
    return int(row["total"]) if row else 0
