from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Type

from pydantic import BaseModel

from mythbuster.llm import prompts
from mythbuster.models import (
    GameStatement,
    LensResult,
    MiniMyth,
    MythVerification,
    SourceAnalysis,
    SynthesisResult,
    TrackConcept,
    TrackMyth,
)


@dataclass(frozen=True)
class RequestKind:
    """Per-kind configuration consumed by ``AIOrchestrator.run_provider_request``."""

    name: str
    quota_feature: str
    system_prompt: str
    model: Type[BaseModel]
    temperature: float | None = None
    max_tokens: int | None = None
    # "lenient" drops invalid entries, "exact" requires a full valid batch.
    list_mode: str | None = None
    # Fields the orchestrator fills in itself; kept out of the provider schema.
    local_fields: tuple[str, ...] = ()
    fallback: Any = field(default_factory=dict)

    def response_schema(self) -> dict:
        schema = self.model.model_json_schema()
        props = schema.get("properties", {})
        for name in self.local_fields:
            props.pop(name, None)
        if "required" in schema:
            schema["required"] = [r for r in schema["required"] if r not in self.local_fields]
        if self.list_mode:
            defs = schema.pop("$defs", None)
            wrapped = {"type": "array", "items": schema}
            if defs:
                wrapped["$defs"] = defs
            return wrapped
        return schema

    def fallback_data(self) -> Any:
        return copy.deepcopy(self.fallback)


EMPTY_STATEMENT = {"statement": "", "isTrue": False, "explanation": "", "citations": []}

VERIFY_MYTH = RequestKind(
    name="verify_myth",
    quota_feature="myth_verification",
    system_prompt=prompts.VERIFY_MYTH_SYSTEM_PROMPT,
    model=MythVerification,
    fallback={
        "verdict": "inconclusive",
        "explanation": "",
        "citations": [],
        "mythOrigin": "",
        "relatedMyth": "",
        "whyBelieved": "",
    },
)

RESEARCH_LENS = RequestKind(
    name="research_lens",
    quota_feature="lens_research",
    system_prompt=prompts.RESEARCH_LENS_SYSTEM_PROMPT,
    model=LensResult,
    local_fields=("lensType", "lensName"),
    fallback={"explanation": "", "keyInsights": [], "citations": [], "lensType": "", "lensName": ""},
)

ANALYZE_SOURCE = RequestKind(
    name="analyze_source",
    quota_feature="source_analysis",
    system_prompt=prompts.ANALYZE_SOURCE_SYSTEM_PROMPT,
    model=SourceAnalysis,
    local_fields=("sourceUrl", "sourceCredibility"),
    fallback={
        "analysis": "",
        "reliability": "",
        "methodology": "",
        "corroborating": [],
        "contradicting": [],
        "sourceUrl": "",
        "sourceCredibility": "unknown",
    },
)

SYNTHESIZE_INSIGHTS = RequestKind(
    name="synthesize_insights",
    quota_feature="insight_synthesis",
    system_prompt=prompts.SYNTHESIZE_INSIGHTS_SYSTEM_PROMPT,
    model=SynthesisResult,
    fallback={"overallInsight": "", "themes": [], "connections": [], "contradictions": []},
)

TRACK_CONCEPTS = RequestKind(
    name="track_concepts",
    quota_feature="tracks_generation",
    system_prompt=prompts.TRACK_CONCEPT_SYSTEM_TEMPLATE,
    model=TrackConcept,
    temperature=0.4,
    max_tokens=3500,
    list_mode="lenient",
    fallback=[],
)

TRACK_MYTH = RequestKind(
    name="track_myth",
    quota_feature="track_myth",
    system_prompt=prompts.TRACK_MYTH_SYSTEM_TEMPLATE,
    model=TrackMyth,
    temperature=0.35,
    max_tokens=3500,
    local_fields=(
        "trackId",
        "trackTitle",
        "currentMythIndex",
        "totalMythsInTrack",
        "isLastMythInTrack",
        "trackCompleted",
    ),
    fallback=EMPTY_STATEMENT,
)

GAME_STATEMENT = RequestKind(
    name="game_statement",
    quota_feature="game_question",
    system_prompt=prompts.GAME_SYSTEM_PROMPT,
    model=GameStatement,
    fallback=EMPTY_STATEMENT,
)

MINI_MYTHS = RequestKind(
    name="mini_myths",
    quota_feature="mini_myths",
    system_prompt=prompts.MINI_MYTHS_SYSTEM_TEMPLATE,
    model=MiniMyth,
    temperature=0.4,
    max_tokens=1200,
    list_mode="exact",
    fallback=[],
)

ALL_KINDS = {
    kind.name: kind
    for kind in (
        VERIFY_MYTH,
        RESEARCH_LENS,
        ANALYZE_SOURCE,
        SYNTHESIZE_INSIGHTS,
        TRACK_CONCEPTS,
        TRACK_MYTH,
        GAME_STATEMENT,
        MINI_MYTHS,
    )
}
