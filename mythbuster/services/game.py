from __future__ import annotations

import json
import logging

from mythbuster.errors import InputValidationError
from mythbuster.models import AnswerResult, Citation


logger = logging.getLogger("game")

DEFAULT_CONFIDENCE = 50


def _parse_bool(value, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off"):
        return False
    raise InputValidationError(field, f"{field} must be true or false.")


def _parse_confidence(value) -> int:
    """Whole-number confidence; fractional input is truncated, then clamped to 0-100."""
    if value is None or str(value).strip() == "":
        return DEFAULT_CONFIDENCE
    try:
        confidence = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise InputValidationError("confidence", "Confidence must be a number between 0 and 100.")
    return min(100, max(0, confidence))


def _parse_citations(raw) -> list[Citation]:
    if not raw:
        return []
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning("ignoring malformed citations payload")
        return []
    if not isinstance(items, list):
        return []
    citations = []
    for item in items:
        if not isinstance(item, dict):
            continue
        citations.append(
            Citation(title=item.get("title") or "Unknown Source", url=item.get("url") or "#")
        )
    return citations


def check_answer(
    answer,
    is_true,
    confidence=None,
    statement: str | None = None,
    explanation: str | None = None,
    citations_json: str | None = None,
) -> AnswerResult:
    """Score a true/false answer. Correct answers earn the confidence, wrong ones 0."""
    statement = (statement or "").strip()
    if not statement:
        raise InputValidationError("statement", "Statement is required.")
    if is_true is None or str(is_true).strip() == "":
        raise InputValidationError("isTrue", "isTrue is required.")
    user_answer = _parse_bool(answer, "answer")
    truth = _parse_bool(is_true, "isTrue")
    conf = _parse_confidence(confidence)
    correct = user_answer == truth
    return AnswerResult(
        result="correct" if correct else "incorrect",
        statement=statement,
        userAnswer=user_answer,
        isTrue=truth,
        explanation=explanation or "",
        citations=_parse_citations(citations_json),
        points=conf if correct else 0,
    )
