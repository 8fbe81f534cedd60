from __future__ import annotations

from typing import Any, Iterable


def _as_dict(item: Any) -> dict:
    if hasattr(item, "model_dump"):
        return item.model_dump()
    if isinstance(item, dict):
        return item
    return {}


def merge_citations(structured: Iterable[Any] | None, provider: Iterable[Any] | None) -> list[dict]:
    """Merge answer-embedded citations with the provider's citation list, keyed by URL.

    Structured citations go in first since they carry real titles. Provider entries
    that are bare URL strings get a ``Source N`` title from their 1-based position in
    the provider list. Entries without a URL are dropped.
    """
    merged: dict[str, dict] = {}
    for item in structured or []:
        entry = _as_dict(item)
        url = (entry.get("url") or "").strip()
        if not url or url in merged:
            continue
        merged[url] = {"title": (entry.get("title") or "").strip() or url, "url": url}

    for idx, item in enumerate(provider or []):
        if isinstance(item, str):
            url = item.strip()
            title = f"Source {idx + 1}"
        else:
            entry = _as_dict(item)
            url = (entry.get("url") or "").strip()
            title = (entry.get("title") or "").strip() or f"Source {idx + 1}"
        if not url or url in merged:
            continue
        merged[url] = {"title": title, "url": url}
    return list(merged.values())
