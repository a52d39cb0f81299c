"""
Pydantic data models for transcript input and analysis output.
"""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_validator, model_validator
from typing import Dict, List, Optional, Literal

RateAssessment = Literal["too_slow", "slow", "optimal", "fast", "too_fast", "unknown"]
Grade = Literal["A", "B", "C", "D", "F"]


class Word(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str = Field(default="", validation_alias=AliasChoices("raw", "word"))
    punctuated: str = Field(default="", validation_alias=AliasChoices("punctuated", "punctuated_word"))
    start_ms: int = Field(default=0, validation_alias=AliasChoices("start_ms", "start"))
    end_ms: int = Field(default=0, validation_alias=AliasChoices("end_ms", "end"))
    confidence: Optional[float] = None

    @model_validator(mode="after")
    def _fill_punctuated(self):
        # Upstream sometimes omits either spelling; keep both populated
        if not self.punctuated and self.raw:
            object.__setattr__(self, "punctuated", self.raw)
        elif not self.raw and self.punctuated:
            object.__setattr__(self, "raw", self.punctuated)
        return self

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


class TranscriptMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    duration_ms: int = 0
    confidence: Optional[float] = None
    language: str = "en"


class Transcript(BaseModel):
    """
    Word-level timestamped transcript produced by the transcription step.

    Missing or null fields degrade to empty values so that a poor recording
    never fails validation.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", validation_alias=AliasChoices("text", "transcript"))
    words: List[Word] = Field(default_factory=list)
    metadata: TranscriptMetadata = Field(default_factory=TranscriptMetadata)

    @field_validator("text", mode="before")
    @classmethod
    def _none_text(cls, v):
        return "" if v is None else v

    @field_validator("words", mode="before")
    @classmethod
    def _none_words(cls, v):
        return [] if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_metadata(cls, v):
        return {} if v is None else v

    @property
    def duration_ms(self) -> int:
        return max(0, self.metadata.duration_ms)

    @property
    def full_text(self) -> str:
        if self.text:
            return self.text
        return " ".join(w.punctuated for w in self.words)


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    category: str
    severity: str
    text: str
    start_ms: int
    end_ms: int
    rationale: Optional[str] = None
    tip: Optional[str] = None
    source: Literal["rule"] = "rule"
    pattern: Optional[str] = None
    speaking_rate: Optional[float] = None
    pause_duration_ms: Optional[int] = None
    matched_words: Optional[List[str]] = None


class DetectorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: int
    duration_ms: int
    speaking_rate_wpm: float
    filler_word_rate: float
    clarity_score: float


# metrics


class BasicMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: int
    unique_word_count: int
    syllable_count: int
    duration_ms: int
    duration_seconds: float
    speaking_time_ms: int
    pause_time_ms: int
    average_word_length: float


class SpeakingMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    words_per_minute: float
    effective_words_per_minute: float
    speaking_rate_assessment: RateAssessment
    pace_consistency: float = Field(ge=0, le=100)
    pace_variation_coefficient: float
    speech_to_silence_ratio: Optional[float] = None


class FillerMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_filler_count: int
    filler_rate_percentage: float
    filler_rate_per_minute: float
    filler_breakdown: Dict[str, int] = Field(default_factory=dict)
    filler_density: Literal["excellent", "good", "moderate", "high", "very_high"]


class PauseBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int
    percentage: float


class PauseMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_pause_count: int = 0
    average_pause_ms: int = 0
    longest_pause_ms: int = 0
    shortest_pause_ms: int = 0
    long_pause_count: int = 0
    very_short_pause_count: int = 0
    pause_quality_score: float = Field(default=50, ge=0, le=100)
    pause_distribution: Dict[str, PauseBucket] = Field(default_factory=dict)


class ClarityMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    clarity_score: float = Field(ge=0, le=100)
    clarity_components: Dict[str, float]
    filler_metrics: FillerMetrics
    pause_metrics: PauseMetrics
    articulation_score: float = Field(ge=0, le=100)


class FluencyMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    fluency_score: float = Field(ge=0, le=100)
    hesitation_count: int
    restart_count: int
    incomplete_thoughts: int
    flow_interruptions: int
    speech_smoothness: float = Field(ge=0, le=100)


class EngagementMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    energy_level: float = Field(ge=0, le=100)
    pace_variation: float = Field(ge=0, le=100)
    emphasis_patterns: Dict[str, int]
    question_usage: int
    exclamation_usage: int
    engagement_score: float = Field(ge=0, le=100)


class ComponentScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    pace_score: float = Field(ge=0, le=100)
    clarity_score: float = Field(ge=0, le=100)
    fluency_score: float = Field(ge=0, le=100)
    engagement_score: float = Field(ge=0, le=100)


class OverallScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: float = Field(ge=0, le=100)
    component_scores: ComponentScores
    grade: Grade
    improvement_potential: Literal["minimal", "moderate", "significant", "high"]
    strengths: List[str] = Field(default_factory=list)
    areas_for_improvement: List[str] = Field(default_factory=list)


class CalculationMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    calculation_time: datetime
    transcript_quality: Literal["high", "medium", "low", "very_low"]
    confidence_level: float


class Metrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    basic: BasicMetrics
    speaking: SpeakingMetrics
    clarity: ClarityMetrics
    fluency: FluencyMetrics
    engagement: EngagementMetrics
    overall: OverallScores
    calculation_metadata: CalculationMetadata


class AnalysisResponse(BaseModel):
    language: str
    issues: List[Issue] = Field(default_factory=list)
    summary: DetectorSummary
    metrics: Metrics
