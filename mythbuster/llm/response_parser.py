from __future__ import annotations

import json
import logging
from typing import Any, Type

import pydantic
from pydantic import BaseModel

from mythbuster.errors import ParseError, ValidationError


logger = logging.getLogger("response_parser")

FENCES = ("```json", "```JSON", "```")


def message_content(answer: Any) -> Any:
    """Pull ``choices[0].message.content`` out of a chat-completion body."""
    if not isinstance(answer, dict):
        raise ParseError("Provider response was not a JSON object.", answer)
    choices = answer.get("choices") or [{}]
    message = (choices[0] or {}).get("message") or {}
    content = message.get("content")
    if isinstance(content, list):
        content = "".join([p.get("text") or "" for p in content if isinstance(p, dict)])
    if content is None or content == "":
        raise ParseError("Provider response contained no content.", answer)
    return content


def _is_object(value: Any) -> bool:
    return isinstance(value, (dict, list))


def extract_json(content: Any) -> dict | list:
    """Tolerant parse: native object, whole-string JSON, then a fenced block.

    JSON buried in prose without a fence is rejected rather than scraped.
    """
    if _is_object(content):
        return content
    if not isinstance(content, str):
        raise ParseError("Provider content was neither text nor JSON.", content)
    text = content.strip()
    try:
        parsed = json.loads(text)
        if _is_object(parsed):
            return parsed
    except json.JSONDecodeError:
        pass
    if "```" in text:
        for fence in FENCES:
            if fence not in text:
                continue
            inner = text.split(fence, 1)[1].split("```", 1)[0].strip()
            try:
                parsed = json.loads(inner)
            except json.JSONDecodeError:
                continue
            if _is_object(parsed):
                return parsed
    raise ParseError("Could not find a JSON payload in the provider response.", content)


def _error_summary(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_payload(model: Type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise ValidationError("expected a JSON object", payload)
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(_error_summary(exc), payload) from exc


def _as_items(payload: Any) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for value in payload.values():
            if isinstance(value, list):
                return value
    raise ValidationError("expected a JSON array", payload)


def validate_batch(model: Type[BaseModel], payload: Any, exact_count: int | None = None) -> list[BaseModel]:
    """Validate a list payload.

    With ``exact_count`` every entry must be valid and the length must match.
    Without it invalid entries are dropped and only an all-invalid batch fails.
    """
    items = _as_items(payload)
    if exact_count is not None:
        if len(items) != exact_count:
            raise ValidationError(f"expected exactly {exact_count} items, got {len(items)}", payload)
        return [validate_payload(model, item) for item in items]

    valid: list[BaseModel] = []
    for item in items:
        try:
            valid.append(validate_payload(model, item))
        except ValidationError as exc:
            logger.warning("dropping invalid %s entry: %s", model.__name__, exc.reason)
    if not valid:
        raise ValidationError("no valid entries in batch", payload)
    return valid


def parse_response(
    answer: Any,
    model: Type[BaseModel],
    list_mode: str | None = None,
    exact_count: int | None = None,
):
    """Raw provider body -> validated model (or list of models)."""
    payload = extract_json(message_content(answer))
    if list_mode == "exact":
        return validate_batch(model, payload, exact_count=exact_count)
    if list_mode == "lenient":
        return validate_batch(model, payload)
    return validate_payload(model, payload)
