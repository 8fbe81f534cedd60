from __future__ import annotations

import copy
import functools
import json
import logging
import time
from typing import Any, Callable
from urllib.parse import urlparse

from mythbuster.config import Settings
from mythbuster.errors import (
    InputValidationError,
    MissingCredentialError,
    MythBusterError,
    NetworkError,
    ProviderTimeout,
    QuotaExceeded,
)
from mythbuster.infra.cache import ResponseCache, cache_key
from mythbuster.infra.metrics import call_summary, hash_block
from mythbuster.infra.singleflight import SingleFlight
from mythbuster.llm import prompts
from mythbuster.llm.citations import merge_citations
from mythbuster.llm.provider_client import ProviderClient, provider_citations
from mythbuster.llm.response_parser import parse_response
from mythbuster.models import ActionResult, ResponseEnvelope
from mythbuster.services.quota import QuotaLedger
from mythbuster.services.request_kinds import (
    ANALYZE_SOURCE,
    GAME_STATEMENT,
    MINI_MYTHS,
    RESEARCH_LENS,
    SYNTHESIZE_INSIGHTS,
    TRACK_CONCEPTS,
    TRACK_MYTH,
    VERIFY_MYTH,
    RequestKind,
)
from mythbuster.services.sources import classify_source


logger = logging.getLogger("orchestrator")

LENS_TYPES = ("historical", "scientific", "cultural", "psychological", "economic", "political", "custom")
ANALYSIS_TYPES = ("reliability", "methodology", "contradictions", "corroboration", "custom")
DIFFICULTIES = ("easy", "medium", "hard")


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _required(value: Any, field: str, message: str) -> str:
    text = _text(value)
    if not text:
        raise InputValidationError(field, message)
    return text


def _int_field(value: Any, field: str, message: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InputValidationError(field, message)


def _validated(kind: RequestKind):
    """Turn an ``InputValidationError`` raised by an action into a failure envelope."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except InputValidationError as exc:
                logger.info("%s rejected input field=%s: %s", kind.name, exc.field, exc.message)
                return self._fail(kind, exc)

        return wrapper

    return decorator


class AIOrchestrator:
    """Mediates every provider call: cache, quota, request, parse, citations, envelope."""

    def __init__(
        self,
        settings: Settings,
        cache: ResponseCache,
        ledger: QuotaLedger,
        client: ProviderClient,
        flights: SingleFlight | None = None,
    ):
        self.settings = settings
        self.cache = cache
        self.ledger = ledger
        self.client = client
        self.flights = flights or SingleFlight(
            wait_timeout=settings.request_timeout * (settings.provider_retries + 2)
        )

    # envelopes

    @staticmethod
    def _ok(data: Any) -> dict:
        return ResponseEnvelope(success=True, cached=False, data=data).model_dump()

    def _fail(self, kind: RequestKind, exc: MythBusterError, extra: dict | None = None) -> dict:
        data = kind.fallback_data()
        if extra and isinstance(data, dict):
            data.update(extra)
        return ResponseEnvelope(success=False, error=exc.message, errorCode=exc.code, data=data).model_dump()

    # generic pipeline

    def run_provider_request(
        self,
        kind: RequestKind,
        user_content: str,
        key: str | None = None,
        user_api_key: str | None = None,
        system_prompt: str | None = None,
        finalize: Callable[[Any, list], Any] | None = None,
        exact_count: int | None = None,
        fallback_extra: dict | None = None,
    ) -> dict:
        ttl = self.settings.ttl_for(kind.name) if key else 0
        if ttl > 0:
            hit = self.cache.get(key)
            if hit is not None:
                logger.info(call_summary(kind.name, True, 0))
                return {**copy.deepcopy(hit), "cached": True}

        user_api_key = _text(user_api_key) or None
        api_key = user_api_key or self.settings.provider_api_key
        if not api_key:
            logger.error("no provider credential configured for %s", kind.name)
            raise MissingCredentialError()

        def fresh() -> dict:
            return self._fresh(
                kind,
                user_content,
                key,
                ttl,
                api_key,
                user_supplied=user_api_key is not None,
                system_prompt=system_prompt,
                finalize=finalize,
                exact_count=exact_count,
                fallback_extra=fallback_extra,
            )

        if ttl <= 0:
            return fresh()
        mode = "user" if user_api_key else "house"
        try:
            envelope, shared = self.flights.do(f"{key}|{mode}", fresh)
        except MythBusterError as exc:
            logger.warning("%s: %s", call_summary(kind.name, False, 0, exc.code), exc.message)
            return self._fail(kind, exc, fallback_extra)
        if shared:
            logger.info("%s coalesced onto in-flight request", kind.name)
        return copy.deepcopy(envelope)

    def _fresh(
        self,
        kind: RequestKind,
        user_content: str,
        key: str | None,
        ttl: int,
        api_key: str,
        user_supplied: bool,
        system_prompt: str | None,
        finalize: Callable[[Any, list], Any] | None,
        exact_count: int | None,
        fallback_extra: dict | None,
    ) -> dict:
        if ttl > 0:
            hit = self.cache.get(key)
            if hit is not None:
                return {**copy.deepcopy(hit), "cached": True}

        started = time.monotonic()
        try:
            if not user_supplied:
                feature = kind.quota_feature
                decision = self.ledger.admit(feature, self.settings.daily_limit(feature))
                if not decision.allowed:
                    raise QuotaExceeded(feature, decision.limit)
            payload = self.client.build_payload(
                system_prompt or kind.system_prompt,
                user_content,
                temperature=kind.temperature,
                max_tokens=kind.max_tokens,
                schema=kind.response_schema(),
            )
            body = self.client.complete(api_key, payload)
            parsed = parse_response(body, kind.model, list_mode=kind.list_mode, exact_count=exact_count)
            finalize = finalize or _default_finalize
            data = finalize(parsed, provider_citations(body))
        except MythBusterError as exc:
            latency = int((time.monotonic() - started) * 1000)
            logger.warning("%s: %s", call_summary(kind.name, False, latency, exc.code), exc.message)
            return self._fail(kind, exc, fallback_extra)
        except Exception:
            logger.exception("%s failed unexpectedly", kind.name)
            failure = MythBusterError("An unexpected error occurred while contacting the AI provider.")
            return self._fail(kind, failure, fallback_extra)

        envelope = self._ok(data)
        if ttl > 0:
            self.cache.set(key, copy.deepcopy(envelope), ttl)
        logger.info(call_summary(kind.name, False, int((time.monotonic() - started) * 1000)))
        return envelope

    # actions

    @_validated(VERIFY_MYTH)
    def verify_myth(self, myth: Any, user_api_key: str | None = None) -> dict:
        myth = _required(myth, "myth", "Please enter a myth to verify.")
        return self.run_provider_request(
            VERIFY_MYTH,
            myth,
            key=cache_key("verify_myth", myth.lower()),
            user_api_key=user_api_key,
        )

    @_validated(RESEARCH_LENS)
    def research_lens(
        self,
        myth_statement: Any,
        lens_type: Any,
        lens_name: Any = None,
        custom_query: Any = None,
        user_api_key: str | None = None,
    ) -> dict:
        myth = _required(myth_statement, "mythStatement", "Myth statement is required.")
        lens_type = _required(lens_type, "lensType", "Lens type is required.").lower()
        if lens_type not in LENS_TYPES:
            raise InputValidationError("lensType", f"Unknown lens type: {lens_type}.")
        custom_query = _text(custom_query)
        if lens_type == "custom" and not custom_query:
            raise InputValidationError("customQuery", "A custom lens needs a research question.")
        lens_name = _text(lens_name) or lens_type.title()

        def finalize(parsed, provider_cites):
            data = parsed.model_dump()
            data["citations"] = merge_citations(parsed.citations, provider_cites)
            data["lensType"] = lens_type
            data["lensName"] = lens_name
            return data

        key = cache_key(
            "research_lens",
            hash_block({"myth": myth.lower(), "lens": lens_type, "query": custom_query.lower()}),
        )
        return self.run_provider_request(
            RESEARCH_LENS,
            prompts.lens_prompt(myth, lens_type, custom_query),
            key=key,
            user_api_key=user_api_key,
            finalize=finalize,
            fallback_extra={"lensType": lens_type, "lensName": lens_name},
        )

    @_validated(ANALYZE_SOURCE)
    def analyze_source(
        self,
        source_url: Any,
        myth_context: Any,
        analysis_type: Any = None,
        source_name: Any = None,
        custom_query: Any = None,
        user_api_key: str | None = None,
    ) -> dict:
        url = _required(source_url, "sourceUrl", "Source URL is required.")
        parsed_url = urlparse(url)
        if parsed_url.scheme not in ("http", "https") or not parsed_url.netloc:
            raise InputValidationError("sourceUrl", "Source URL must be an http(s) address.")
        myth = _required(myth_context, "mythContext", "Myth context is required.")
        analysis_type = (_text(analysis_type) or "reliability").lower()
        if analysis_type not in ANALYSIS_TYPES:
            raise InputValidationError("analysisType", f"Unknown analysis type: {analysis_type}.")
        custom_query = _text(custom_query)
        if analysis_type == "custom" and not custom_query:
            raise InputValidationError("customQuery", "A custom analysis needs a question.")
        source_name = _text(source_name)
        credibility = classify_source(url)

        def finalize(parsed, provider_cites):
            data = parsed.model_dump()
            data["sourceUrl"] = url
            data["sourceCredibility"] = credibility
            return data

        key = cache_key(
            "analyze_source",
            hash_block(
                {
                    "url": url,
                    "name": source_name,
                    "myth": myth.lower(),
                    "type": analysis_type,
                    "query": custom_query.lower(),
                }
            ),
        )
        return self.run_provider_request(
            ANALYZE_SOURCE,
            prompts.source_prompt(url, myth, analysis_type, custom_query, source_name),
            key=key,
            user_api_key=user_api_key,
            finalize=finalize,
            fallback_extra={"sourceUrl": url, "sourceCredibility": credibility},
        )

    @_validated(SYNTHESIZE_INSIGHTS)
    def synthesize_insights(self, myth_statement: Any, lens_results: Any, user_api_key: str | None = None) -> dict:
        myth = _required(myth_statement, "mythStatement", "Myth statement is required.")
        lenses = _lens_summaries(lens_results)
        key = cache_key("synthesize_insights", hash_block({"myth": myth.lower(), "lenses": lenses}))
        return self.run_provider_request(
            SYNTHESIZE_INSIGHTS,
            prompts.synthesis_prompt(myth, lenses),
            key=key,
            user_api_key=user_api_key,
        )

    def generate_track_concepts(self, user_api_key: str | None = None) -> dict:
        count = self.settings.track_concepts_count
        return self.run_provider_request(
            TRACK_CONCEPTS,
            prompts.TRACK_CONCEPT_USER_PROMPT,
            key=cache_key("track_concepts"),
            user_api_key=user_api_key,
            system_prompt=prompts.TRACK_CONCEPT_SYSTEM_TEMPLATE.format(count=count),
        )

    @_validated(TRACK_MYTH)
    def generate_track_myth(
        self,
        track_id: Any,
        track_title: Any,
        track_category: Any,
        track_difficulty: Any,
        total_myths: Any,
        myth_index: Any,
        user_api_key: str | None = None,
    ) -> dict:
        track_id = _required(track_id, "trackId", "Track id is required.")
        title = _required(track_title, "trackTitle", "Track title is required.")
        category = _text(track_category) or "General"
        difficulty = (_text(track_difficulty) or "medium").lower()
        total = _int_field(total_myths, "totalMythsInTrack", "Total myths in track must be a whole number.")
        if total <= 0:
            raise InputValidationError("totalMythsInTrack", "Total myths in track must be greater than zero.")
        index = _int_field(myth_index, "mythIndex", "Myth index must be a whole number.")
        if index < 0:
            raise InputValidationError("mythIndex", "Myth index cannot be negative.")

        progress = {
            "trackId": track_id,
            "trackTitle": title,
            "currentMythIndex": index,
            "totalMythsInTrack": total,
            "isLastMythInTrack": index >= total - 1,
            "trackCompleted": False,
        }
        if index >= total:
            logger.info("track %s completed at index %s/%s", track_id, index, total)
            data = {**TRACK_MYTH.fallback_data(), **progress, "isLastMythInTrack": True, "trackCompleted": True}
            return ResponseEnvelope(
                success=False,
                error=f"Myth index {index} is out of bounds. Track completed.",
                errorCode="track_completed",
                data=data,
            ).model_dump()

        def finalize(parsed, provider_cites):
            data = parsed.model_dump()
            data["citations"] = merge_citations(parsed.citations, provider_cites)
            data.update(progress)
            return data

        return self.run_provider_request(
            TRACK_MYTH,
            prompts.track_myth_prompt(title, index + 1),
            key=cache_key("track_myth", track_id, str(index)),
            user_api_key=user_api_key,
            system_prompt=prompts.track_myth_system_prompt(title, category, difficulty, index + 1, total),
            finalize=finalize,
            fallback_extra=progress,
        )

    @_validated(GAME_STATEMENT)
    def generate_game_statement(
        self, difficulty: Any = None, category: Any = None, user_api_key: str | None = None
    ) -> dict:
        difficulty = (_text(difficulty) or "medium").lower()
        if difficulty not in DIFFICULTIES:
            raise InputValidationError("difficulty", "Difficulty must be easy, medium or hard.")
        category = _text(category) or "general"
        return self.run_provider_request(
            GAME_STATEMENT,
            prompts.game_prompt(difficulty, category),
            user_api_key=user_api_key,
        )

    def generate_mini_myths(self, user_api_key: str | None = None) -> dict:
        count = self.settings.mini_myths_count
        return self.run_provider_request(
            MINI_MYTHS,
            prompts.MINI_MYTHS_USER_TEMPLATE.format(count=count),
            key=cache_key("mini_myths"),
            user_api_key=user_api_key,
            system_prompt=prompts.MINI_MYTHS_SYSTEM_TEMPLATE.format(count=count),
            exact_count=count,
        )

    # credentials and admin

    def validate_api_key(self, api_key: Any) -> ActionResult:
        api_key = _text(api_key)
        if not api_key:
            return ActionResult(success=True, message="API key removed. The shared daily limits apply again.")
        try:
            status = self.client.ping(api_key)
        except (ProviderTimeout, NetworkError) as exc:
            logger.warning("api key validation failed: %s", exc.message)
            return ActionResult(success=False, error=exc.message)
        if 200 <= status < 300:
            logger.info("user api key validated")
            return ActionResult(success=True, message="API key saved. Your requests now bypass the shared daily limits.")
        if status in (401, 403):
            return ActionResult(success=False, error="Invalid API key. Please check the key and try again.")
        return ActionResult(success=False, error=f"Could not validate the API key (provider returned status {status}).")

    def clear_cache(self) -> int:
        return self.cache.clear()


def _default_finalize(parsed: Any, provider_cites: list) -> Any:
    if isinstance(parsed, list):
        return [item.model_dump() for item in parsed]
    data = parsed.model_dump()
    if "citations" in data:
        data["citations"] = merge_citations(parsed.citations, provider_cites)
    return data


def _lens_summaries(raw: Any) -> list[dict]:
    """Decode the lensResults form field into perspective/insights/explanation rows."""
    if isinstance(raw, str):
        if not raw.strip():
            raise InputValidationError("lensResults", "Lens results are required.")
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise InputValidationError("lensResults", "Invalid lens results format.")
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise InputValidationError("lensResults", "Invalid lens results format.")
    if len(raw) < 2:
        raise InputValidationError("lensResults", "At least 2 research angles are needed for synthesis.")

    lenses = []
    for item in raw:
        result = item.get("result") if isinstance(item.get("result"), dict) else item
        insights = result.get("keyInsights") or []
        lenses.append(
            {
                "perspective": _text(item.get("name") or item.get("lensName") or item.get("id")) or "Unnamed",
                "insights": [i for i in insights if isinstance(i, str)] if isinstance(insights, list) else [],
                "explanation": _text(result.get("explanation")),
            }
        )
    return lenses
