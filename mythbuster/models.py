from __future__ import annotations

from typing import Annotated, Any, List, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, field_validator


def _none_as_empty(value):
    return "" if value is None else value


def _none_as_list(value):
    return [] if value is None else value


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must be a non-empty string")
    return value


RequiredText = Annotated[str, AfterValidator(_require_text)]
OptionalText = Annotated[str, BeforeValidator(_none_as_empty)]
TextList = Annotated[List[str], BeforeValidator(_none_as_list)]


class Citation(BaseModel):
    title: OptionalText = ""
    url: OptionalText = ""


CitationList = Annotated[List[Citation], BeforeValidator(_none_as_list)]


class MythVerification(BaseModel):
    verdict: Literal["true", "false", "inconclusive"]
    explanation: RequiredText
    citations: CitationList = Field(default_factory=list)
    mythOrigin: OptionalText = ""
    relatedMyth: OptionalText = ""
    whyBelieved: OptionalText = ""

    @field_validator("verdict", mode="before")
    @classmethod
    def _normalize_verdict(cls, value):
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, str):
            return value.strip().lower()
        return value


class LensResult(BaseModel):
    explanation: RequiredText
    keyInsights: TextList = Field(default_factory=list)
    citations: CitationList = Field(default_factory=list)
    lensType: str = ""
    lensName: str = ""


class SourceAnalysis(BaseModel):
    analysis: RequiredText
    reliability: OptionalText = ""
    methodology: OptionalText = ""
    corroborating: TextList = Field(default_factory=list)
    contradicting: TextList = Field(default_factory=list)
    sourceUrl: str = ""
    sourceCredibility: str = "unknown"


class SynthesisTheme(BaseModel):
    title: RequiredText
    description: OptionalText = ""


class SynthesisResult(BaseModel):
    overallInsight: RequiredText
    themes: List[SynthesisTheme] = Field(default_factory=list)
    connections: TextList = Field(default_factory=list)
    contradictions: TextList = Field(default_factory=list)


class TrackConcept(BaseModel):
    id: RequiredText
    title: RequiredText
    description: RequiredText
    category: RequiredText
    difficulty: Literal["easy", "medium", "hard"]
    icon: OptionalText = "BookOpen"
    totalMyths: int = Field(gt=0)

    @field_validator("icon")
    @classmethod
    def _default_icon(cls, value: str) -> str:
        return value or "BookOpen"


class GameStatement(BaseModel):
    statement: RequiredText
    isTrue: bool
    explanation: RequiredText
    citations: CitationList = Field(default_factory=list)


class TrackMyth(GameStatement):
    trackId: str = ""
    trackTitle: str = ""
    currentMythIndex: int = 0
    totalMythsInTrack: int = 0
    isLastMythInTrack: bool = False
    trackCompleted: bool = False


class MiniMyth(BaseModel):
    statement: RequiredText
    verdict: bool
    explanation: RequiredText


class AnswerResult(BaseModel):
    result: Literal["correct", "incorrect"]
    statement: str
    userAnswer: bool
    isTrue: bool
    explanation: str = ""
    citations: List[Citation] = Field(default_factory=list)
    points: int = 0


class ResponseEnvelope(BaseModel):
    success: bool
    cached: bool = False
    error: str | None = None
    errorCode: str | None = None
    data: Any = None


class ActionResult(BaseModel):
    success: bool
    message: str = ""
    error: str | None = None


class SignupRequest(BaseModel):
    name: str = ""
    email: str = ""
