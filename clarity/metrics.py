"""
Scored quality report for a transcript: counts, pace, clarity, fluency,
engagement and a weighted overall grade.

All sub-scores are on a 0-100 scale.
"""
from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from functools import cached_property
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from clarity.models import (
    BasicMetrics,
    CalculationMetadata,
    ClarityMetrics,
    ComponentScores,
    EngagementMetrics,
    FillerMetrics,
    FluencyMetrics,
    Issue,
    Metrics,
    OverallScores,
    PauseBucket,
    PauseMetrics,
    SpeakingMetrics,
    Transcript,
    Word,
)
from clarity.rulepacks import RegexMatcher, Rulepack
from clarity.stats import clamp, coefficient_of_variation, estimate_syllables, words_per_minute

logger = logging.getLogger(__name__)

# Standard speech rate ranges (words per minute)
OPTIMAL_WPM_RANGE = (140, 160)
ACCEPTABLE_WPM_RANGE = (120, 180)
SLOW_WPM_THRESHOLD = 120
FAST_WPM_THRESHOLD = 180

CLARITY_WEIGHTS = {
    "filler_rate": 0.30,
    "pace_consistency": 0.25,
    "pause_quality": 0.20,
    "articulation": 0.15,
    "fluency": 0.10,
}

OVERALL_WEIGHTS = {
    "pace": 0.25,
    "clarity": 0.35,
    "fluency": 0.25,
    "engagement": 0.15,
}

GRADE_CUTOFFS = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))
STRENGTH_THRESHOLD = 80
IMPROVEMENT_THRESHOLD = 75
MAX_HIGHLIGHTS = 3

# Pauses (ms)
MIN_COUNTED_PAUSE_MS = 100
SHORT_PAUSE_MS = 200
LONG_PAUSE_MS = 3000
PAUSE_BUCKETS = (
    ("optimal", 200, 800),
    ("acceptable", 800, 1500),
    ("long", 1500, 3000),
    ("very_long", 3000, float("inf")),
)

# Articulation
DEFAULT_ARTICULATION = 90.0
ARTICULATION_ISSUE_PENALTY = 10.0
MAX_SYLLABLES_PER_SECOND = 5.0

FILLER_CATEGORY = "filler_words"

BUILTIN_FILLER_PATTERNS: Dict[str, Dict[str, str]] = {
    "en": {
        "um": r"\b(um|uhm)\b",
        "uh": r"\b(uh|er|ah)\b",
        "like": r"\blike\b",
        "you_know": r"\byou know\b",
        "basically": r"\bbasically\b",
        "actually": r"\bactually\b",
        "so": r"\bso\b(?!\s+(that|what|how|when|where|why))",
    },
    "es": {
        "eh": r"\b(eh|este|esto)\b",
        "pues": r"\bpues\b",
        "bueno": r"\bbueno\b",
        "o_sea": r"\bo sea\b",
        "como": r"\bcomo\b(?!\s+(que|si|cuando))",
    },
    "pt": {
        "eh": r"\b(eh|é)\b",
        "ah": r"\b(ah|hm|ahn)\b",
        "tipo": r"\btipo\b",
        "ne": r"\bné\b",
        "entao": r"\bentão\b",
        "assim": r"\bassim\b",
        "sei_la": r"\bsei lá\b",
        "meio_que": r"\bmeio que\b",
        "tipo_assim": r"\btipo assim\b",
        "mais_ou_menos": r"\bmais ou menos\b",
    },
}

_HESITATION_PATTERNS = (
    re.compile(r"\b(um|uh|er|ah|hmm)\b", re.IGNORECASE),
    re.compile(r"\.\.\.|…"),
    re.compile(r"--"),
)
_RESTART_PATTERN = re.compile(r"\b\w+--?\s+\w+")
_INCOMPLETE_PATTERNS = (
    re.compile(r"\b(and|but|so|then)\s*\.\.\.", re.IGNORECASE),
    re.compile(r"\b(i|we|they|it)\s+(was|were|will|would|should)\s*\.\.\.", re.IGNORECASE),
)
_CAPS_PATTERN = re.compile(r"\b[A-Z]{2,}\b")
_EMPHASIS_WORDS = re.compile(r"\b(amazing|fantastic|incredible|wow|great|excellent)\b", re.IGNORECASE)
_REPETITION_PATTERN = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_SENTENCE_START_FILLER = re.compile(r"^(um|uh|er|ah|like)\W*$")


class MetricsError(Exception):
    """Unexpected failure while computing the metrics report."""


def assess_speaking_rate(wpm: float) -> str:
    if wpm < SLOW_WPM_THRESHOLD:
        return "too_slow"
    if wpm < OPTIMAL_WPM_RANGE[0]:
        return "slow"
    if wpm <= OPTIMAL_WPM_RANGE[1]:
        return "optimal"
    if wpm <= FAST_WPM_THRESHOLD:
        return "fast"
    return "too_fast"


def score_speaking_pace(wpm: float) -> float:
    """Map WPM onto a 0-100 pace score around the optimal band."""
    if OPTIMAL_WPM_RANGE[0] <= wpm <= OPTIMAL_WPM_RANGE[1]:
        return 100.0
    if ACCEPTABLE_WPM_RANGE[0] <= wpm <= ACCEPTABLE_WPM_RANGE[1]:
        return 85.0
    if 100 <= wpm < SLOW_WPM_THRESHOLD or FAST_WPM_THRESHOLD < wpm <= 200:
        return 70.0
    if 80 <= wpm < 100 or 200 < wpm <= 250:
        return 50.0
    return 30.0


def score_to_grade(score: float) -> str:
    for cutoff, grade in GRADE_CUTOFFS:
        if score >= cutoff:
            return grade
    return "F"


def weighted_score(components: Dict[str, float], weights: Dict[str, float]) -> float:
    total_weight = sum(weights.get(k, 0.0) for k in components)
    if total_weight == 0:
        return 0.0
    return sum(score * weights.get(k, 0.0) for k, score in components.items()) / total_weight


def _issue_kind(issue) -> Optional[str]:
    if isinstance(issue, dict):
        return issue.get("kind")
    return getattr(issue, "kind", None)


class MetricsCalculator:
    """
    Compute the full metrics report for one transcript.

    Detected issues are optional context (articulation and long-pause
    issues adjust the scores). Filler counting uses the rulepack's
    ``filler_words`` regex rules when a rulepack is given, otherwise a
    built-in per-language table.
    """

    def __init__(
        self,
        transcript: Union[Transcript, dict, None],
        issues: Optional[Iterable[Union[Issue, dict]]] = None,
        language: str = "en",
        rulepack: Optional[Rulepack] = None,
    ):
        self._raw_transcript = transcript
        self.issues = list(issues or [])
        self.language = language
        self.rulepack = rulepack

    @cached_property
    def transcript(self) -> Transcript:
        """Validated transcript; coerced on first use so failures surface inside the wrapped calls."""
        raw = self._raw_transcript
        if isinstance(raw, Transcript):
            return raw
        return Transcript.model_validate(raw or {})

    # public calculations

    def calculate_all_metrics(self) -> Metrics:
        try:
            basic = self.calculate_basic_metrics()
            speaking = self.calculate_speaking_metrics()
            clarity = self.calculate_clarity_metrics()
            fluency = self.calculate_fluency_metrics()
            engagement = self.calculate_engagement_metrics()
            overall = self._overall_from(speaking, clarity, fluency, engagement)
            return Metrics(
                basic=basic,
                speaking=speaking,
                clarity=clarity,
                fluency=fluency,
                engagement=engagement,
                overall=overall,
                calculation_metadata=CalculationMetadata(
                    calculation_time=datetime.now(timezone.utc),
                    transcript_quality=self.assess_transcript_quality(),
                    confidence_level=self.calculate_confidence_level(),
                ),
            )
        except MetricsError:
            raise
        except Exception as e:
            logger.exception("[metrics] calculation failed")
            raise MetricsError(f"Failed to calculate metrics: {e}") from e

    def calculate_basic_metrics(self) -> BasicMetrics:
        words = self._extract_words()
        duration_ms = self._duration_ms()
        speaking_ms = self._speaking_time_ms(words)
        avg_len = (sum(len(w.raw) for w in words) / len(words)) if words else 0.0
        return BasicMetrics(
            word_count=len(words),
            unique_word_count=len({w.raw.lower() for w in words}),
            syllable_count=self._syllable_count(words),
            duration_ms=duration_ms,
            duration_seconds=round(duration_ms / 1000.0, 2),
            speaking_time_ms=speaking_ms,
            pause_time_ms=max(duration_ms - speaking_ms, 0),
            average_word_length=round(avg_len, 2),
        )

    def calculate_speaking_metrics(self) -> SpeakingMetrics:
        words = self._extract_words()
        duration_ms = self._duration_ms()
        if not words or duration_ms <= 0:
            return SpeakingMetrics(
                words_per_minute=0,
                effective_words_per_minute=0,
                speaking_rate_assessment="unknown",
                pace_consistency=0,
                pace_variation_coefficient=0,
                speech_to_silence_ratio=0,
            )

        speaking_ms = self._speaking_time_ms(words)
        wpm = words_per_minute(len(words), duration_ms)
        silence_ms = duration_ms - speaking_ms
        return SpeakingMetrics(
            words_per_minute=round(wpm, 1),
            effective_words_per_minute=round(words_per_minute(len(words), speaking_ms), 1),
            speaking_rate_assessment=assess_speaking_rate(wpm),
            pace_consistency=self._pace_consistency(words),
            pace_variation_coefficient=self._pause_variation_coefficient(words),
            speech_to_silence_ratio=round(speaking_ms / silence_ms, 2) if silence_ms > 0 else None,
        )

    def calculate_clarity_metrics(self) -> ClarityMetrics:
        words = self._extract_words()
        filler = self._filler_metrics(words)
        pauses = self._pause_metrics(words)
        articulation = self._articulation_score(words)
        wpm = words_per_minute(len(words), self._duration_ms())

        components = {
            "filler_rate": clamp(100 - filler.filler_rate_percentage),
            "pace_consistency": clamp(score_speaking_pace(wpm)),
            "pause_quality": clamp(pauses.pause_quality_score),
            "articulation": clamp(articulation),
            "fluency": clamp(self._fluency_score(words)),
        }
        clarity = clamp(weighted_score(components, CLARITY_WEIGHTS))
        return ClarityMetrics(
            clarity_score=round(clarity, 1),
            clarity_components={k: round(v, 1) for k, v in components.items()},
            filler_metrics=filler,
            pause_metrics=pauses,
            articulation_score=articulation,
        )

    def calculate_fluency_metrics(self) -> FluencyMetrics:
        words = self._extract_words()
        restarts = self._count_restarts()
        incomplete = self._count_incomplete_thoughts()
        long_pauses = sum(1 for i in self.issues if _issue_kind(i) == "long_pause")
        return FluencyMetrics(
            fluency_score=self._fluency_score(words),
            hesitation_count=self._count_hesitations(),
            restart_count=restarts,
            incomplete_thoughts=incomplete,
            flow_interruptions=long_pauses + restarts + incomplete,
            speech_smoothness=self._speech_smoothness(words),
        )

    def calculate_engagement_metrics(self) -> EngagementMetrics:
        text = self._text()
        energy = self._energy_level()
        variation = self._pace_variation_score()
        emphasis = self._emphasis_patterns()
        base = (energy + variation) / 2
        bonus = min(sum(emphasis.values()) * 2, 20)
        return EngagementMetrics(
            energy_level=energy,
            pace_variation=variation,
            emphasis_patterns=emphasis,
            question_usage=text.count("?"),
            exclamation_usage=text.count("!"),
            engagement_score=round(clamp(base + bonus), 1),
        )

    def calculate_overall_scores(self) -> OverallScores:
        return self._overall_from(
            self.calculate_speaking_metrics(),
            self.calculate_clarity_metrics(),
            self.calculate_fluency_metrics(),
            self.calculate_engagement_metrics(),
        )

    def assess_transcript_quality(self) -> str:
        words = self._extract_words()
        text = self._text()
        indicators = [
            any(w.end_ms > 0 for w in words),
            bool(re.search(r"[.!?]", text)),
            len(text) > 50,
            any(w.confidence is not None for w in words),
        ]
        ratio = sum(indicators) / len(indicators)
        if ratio >= 0.8:
            return "high"
        if ratio >= 0.6:
            return "medium"
        if ratio >= 0.4:
            return "low"
        return "very_low"

    def calculate_confidence_level(self) -> float:
        words = self._extract_words()
        level = 0.7
        if all(w.end_ms >= w.start_ms for w in words):
            level += 0.1
        if len(self._text()) > 100:
            level += 0.1
        if self._duration_ms() < 5000:
            level -= 0.2
        if len(words) < 10:
            level -= 0.2
        return round(clamp(level, 0.0, 1.0), 2)

    def extract_coaching_insights(self) -> Dict:
        """
        Structured pattern summaries for the downstream coaching step.
        Returns an empty dict if anything goes wrong.
        """
        try:
            words = self._extract_words()
            speaking = self.calculate_speaking_metrics()
            clarity = self.calculate_clarity_metrics()
            fluency = self.calculate_fluency_metrics()
            engagement = self.calculate_engagement_metrics()
            return {
                "pause_patterns": self._pause_patterns(clarity.pause_metrics),
                "pace_patterns": self._pace_patterns(words, speaking),
                "energy_patterns": self._energy_patterns(engagement),
                "smoothness_breakdown": self._smoothness_breakdown(clarity, fluency),
                "hesitation_analysis": self._hesitation_analysis(clarity.filler_metrics),
            }
        except Exception:
            logger.exception("[metrics] coaching insights extraction failed")
            return {}

    # input access

    def _extract_words(self) -> List[Word]:
        return self.transcript.words

    def _duration_ms(self) -> int:
        return self.transcript.duration_ms

    def _text(self) -> str:
        return self.transcript.full_text

    # basic helpers

    @staticmethod
    def _speaking_time_ms(words: List[Word]) -> int:
        return sum(max(0, w.end_ms - w.start_ms) for w in words)

    @staticmethod
    def _syllable_count(words: List[Word]) -> int:
        return sum(estimate_syllables(w.raw) for w in words)

    @staticmethod
    def _segment_wpms(words: List[Word], size: int, step: int, min_len: int = 1) -> List[float]:
        wpms = []
        for i in range(0, len(words), step):
            seg = words[i:i + size]
            if len(seg) < min_len:
                continue
            duration = seg[-1].end_ms - seg[0].start_ms
            if duration <= 0:
                continue
            wpms.append(len(seg) / (duration / 60_000.0))
        return wpms

    def _pace_consistency(self, words: List[Word]) -> float:
        """Sliding-window WPM; lower coefficient of variation scores higher."""
        if len(words) < 10:
            return 100.0
        window = max(len(words) // 5, 10)
        step = max(window // 2, 1)
        wpms = self._segment_wpms(words, window, step, min_len=window)
        if len(wpms) < 2:
            return 100.0
        cv = coefficient_of_variation(wpms)
        return round(clamp(100 - cv * 100), 1)

    @staticmethod
    def _gaps(words: List[Word]) -> List[int]:
        return [nxt.start_ms - prev.end_ms for prev, nxt in zip(words, words[1:])]

    def _pause_variation_coefficient(self, words: List[Word]) -> float:
        pauses = [p for p in self._gaps(words) if p > 50]
        return round(coefficient_of_variation(pauses), 3) if pauses else 0.0

    # clarity helpers

    def _filler_patterns(self) -> List[Tuple[Optional[str], re.Pattern]]:
        """(label, regex) pairs; a None label breaks down by matched text."""
        if self.rulepack is not None:
            from_rules = [
                (None, rule.matcher.regex)
                for rule in self.rulepack.rules_for_category(FILLER_CATEGORY)
                if isinstance(rule.matcher, RegexMatcher)
            ]
            if from_rules:
                return from_rules
        table = BUILTIN_FILLER_PATTERNS.get(self.language, BUILTIN_FILLER_PATTERNS["en"])
        return [(label, re.compile(p, re.IGNORECASE)) for label, p in table.items()]

    def _filler_metrics(self, words: List[Word]) -> FillerMetrics:
        text = self._text()
        breakdown: Dict[str, int] = {}
        total = 0
        for label, regex in self._filler_patterns():
            for m in regex.finditer(text):
                if m.end() == m.start():
                    continue
                key = label or m.group(0).lower()
                breakdown[key] = breakdown.get(key, 0) + 1
                total += 1
            if label and label not in breakdown:
                breakdown[label] = 0

        rate = (total / len(words) * 100) if words else 0.0
        minutes = self._duration_ms() / 60_000.0
        return FillerMetrics(
            total_filler_count=total,
            filler_rate_percentage=round(rate, 2),
            filler_rate_per_minute=round(total / minutes, 1) if minutes > 0 else 0.0,
            filler_breakdown=breakdown,
            filler_density=self._filler_density(rate),
        )

    @staticmethod
    def _filler_density(rate: float) -> str:
        if rate <= 2:
            return "excellent"
        if rate <= 5:
            return "good"
        if rate <= 10:
            return "moderate"
        if rate <= 15:
            return "high"
        return "very_high"

    def _pause_metrics(self, words: List[Word]) -> PauseMetrics:
        pauses = [p for p in self._gaps(words) if p > MIN_COUNTED_PAUSE_MS]
        if not pauses:
            return PauseMetrics()

        avg = float(np.mean(pauses))
        longest = max(pauses)
        long_count = sum(1 for p in pauses if p > LONG_PAUSE_MS)
        return PauseMetrics(
            total_pause_count=len(pauses),
            average_pause_ms=int(round(avg)),
            longest_pause_ms=longest,
            shortest_pause_ms=min(pauses),
            long_pause_count=long_count,
            very_short_pause_count=sum(1 for p in pauses if p < SHORT_PAUSE_MS),
            pause_quality_score=self._pause_quality(avg, longest, long_count, len(pauses)),
            pause_distribution=self._pause_distribution(pauses),
        )

    @staticmethod
    def _pause_quality(avg: float, longest: int, long_count: int, total: int) -> float:
        score = 100.0
        if avg > 1500:
            score -= 20
        elif avg > 1000:
            score -= 10

        if longest > 5000:
            score -= 30
        elif longest > 3000:
            score -= 15

        if total > 0:
            ratio = long_count / total
            if ratio > 0.2:
                score -= 25
            elif ratio > 0.1:
                score -= 10
        return clamp(score)

    @staticmethod
    def _pause_distribution(pauses: List[int]) -> Dict[str, PauseBucket]:
        out = {}
        for name, lo, hi in PAUSE_BUCKETS:
            count = sum(1 for p in pauses if lo <= p < hi)
            pct = round(count / len(pauses) * 100, 1) if pauses else 0.0
            out[name] = PauseBucket(count=count, percentage=pct)
        return out

    def _articulation_score(self, words: List[Word]) -> float:
        """Word confidence, minus articulation issues and overly dense syllables."""
        confidences = [w.confidence for w in words if w.confidence is not None]
        score = float(np.mean(confidences)) * 100 if confidences else DEFAULT_ARTICULATION

        score -= ARTICULATION_ISSUE_PENALTY * sum(1 for i in self.issues if _issue_kind(i) == "articulation")

        speaking_s = self._speaking_time_ms(words) / 1000.0
        if speaking_s > 0:
            density = self._syllable_count(words) / speaking_s
            if density > MAX_SYLLABLES_PER_SECOND:
                score -= min(20.0, (density - MAX_SYLLABLES_PER_SECOND) * 10)
        return round(clamp(score), 1)

    # fluency helpers

    def _count_hesitations(self) -> int:
        text = self._text()
        return sum(len(p.findall(text)) for p in _HESITATION_PATTERNS)

    def _count_restarts(self) -> int:
        return len(_RESTART_PATTERN.findall(self._text()))

    def _count_incomplete_thoughts(self) -> int:
        text = self._text()
        return sum(len(p.findall(text)) for p in _INCOMPLETE_PATTERNS)

    def _fluency_score(self, words: List[Word]) -> float:
        score = 100.0
        score -= self._count_hesitations() * 5
        score -= self._count_restarts() * 8
        score -= self._count_incomplete_thoughts() * 10
        score += (self._speech_smoothness(words) - 70) * 0.2
        return round(clamp(score), 1)

    def _speech_smoothness(self, words: List[Word]) -> float:
        if len(words) < 5:
            return 100.0
        word_cv = coefficient_of_variation([w.end_ms - w.start_ms for w in words])
        pause_cv = coefficient_of_variation(self._gaps(words))
        word_smooth = max(100 - word_cv * 50, 0)
        pause_smooth = max(100 - pause_cv * 30, 0)
        return round(clamp((word_smooth + pause_smooth) / 2), 1)

    # engagement helpers

    def _energy_level(self) -> float:
        text = self._text()
        total_words = len(self._extract_words())
        if total_words == 0:
            return 50.0
        indicators = (
            text.count("!")
            + len(_CAPS_PATTERN.findall(text))
            + len(_EMPHASIS_WORDS.findall(text))
            + text.count("?")
        )
        return round(clamp(50 + indicators / total_words * 500), 1)

    def _pace_variation_score(self) -> float:
        """Moderate variation scores best; monotone or erratic pacing scores low."""
        words = self._extract_words()
        if len(words) < 10:
            return 50.0
        size = max(len(words) // 5, 5)
        wpms = self._segment_wpms(words, size, size, min_len=3)
        if len(wpms) < 2:
            return 50.0
        cv = coefficient_of_variation(wpms)
        if 0.2 <= cv <= 0.4:
            return 100.0
        if 0.1 <= cv <= 0.6:
            return 80.0
        if 0.05 <= cv <= 0.8:
            return 60.0
        return 40.0

    def _emphasis_patterns(self) -> Dict[str, int]:
        text = self._text()
        return {
            "repetition_emphasis": len(_REPETITION_PATTERN.findall(text)),
            "exclamation_emphasis": text.count("!"),
            "caps_emphasis": len(_CAPS_PATTERN.findall(text)),
            "question_engagement": text.count("?"),
        }

    # overall

    def _overall_from(
        self,
        speaking: SpeakingMetrics,
        clarity: ClarityMetrics,
        fluency: FluencyMetrics,
        engagement: EngagementMetrics,
    ) -> OverallScores:
        components = {
            "pace": score_speaking_pace(speaking.words_per_minute),
            "clarity": clarity.clarity_score,
            "fluency": fluency.fluency_score,
            "engagement": engagement.engagement_score,
        }
        overall = round(clamp(sum(components[k] * w for k, w in OVERALL_WEIGHTS.items())), 1)
        return OverallScores(
            overall_score=overall,
            component_scores=ComponentScores(
                pace_score=round(components["pace"], 1),
                clarity_score=round(components["clarity"], 1),
                fluency_score=round(components["fluency"], 1),
                engagement_score=round(components["engagement"], 1),
            ),
            grade=score_to_grade(overall),
            improvement_potential=self._improvement_potential(overall),
            strengths=self._highlight(components, lambda s: s >= STRENGTH_THRESHOLD, best_first=True),
            areas_for_improvement=self._highlight(components, lambda s: s < IMPROVEMENT_THRESHOLD, best_first=False),
        )

    @staticmethod
    def _highlight(components: Dict[str, float], keep, best_first: bool) -> List[str]:
        picked = [(name, score) for name, score in components.items() if keep(score)]
        picked.sort(key=lambda item: item[1], reverse=best_first)
        return [name.replace("_", " ").capitalize() for name, _ in picked[:MAX_HIGHLIGHTS]]

    @staticmethod
    def _improvement_potential(score: float) -> str:
        potential = 100 - score
        if potential <= 10:
            return "minimal"
        if potential <= 25:
            return "moderate"
        if potential <= 40:
            return "significant"
        return "high"

    # coaching insight helpers

    @staticmethod
    def _pause_patterns(pauses: PauseMetrics) -> Dict:
        dist = pauses.pause_distribution
        pct = {name: (dist[name].percentage if name in dist else 0.0) for name, _, _ in PAUSE_BUCKETS}

        if pauses.pause_quality_score >= 80:
            breakdown = "mostly_optimal"
        elif pct["long"] > 20 or pct["very_long"] > 10:
            breakdown = "mostly_good_with_awkward_long_pauses"
        elif pct["optimal"] < 40:
            breakdown = "inconsistent_timing"
        else:
            breakdown = "generally_acceptable"

        specific = None
        if pauses.long_pause_count > 0:
            specific = f"{pauses.long_pause_count} pauses over 3 seconds"

        return {
            "distribution": pct,
            "quality_breakdown": breakdown,
            "specific_issue": specific,
            "average_pause_ms": pauses.average_pause_ms,
            "longest_pause_ms": pauses.longest_pause_ms,
        }

    def _pace_patterns(self, words: List[Word], speaking: SpeakingMetrics) -> Dict:
        if len(words) < 10:
            return {
                "trajectory": "insufficient_data",
                "consistency": 0,
                "variation_type": "unknown",
                "wpm_range": [0, 0],
                "average_wpm": 0,
            }
        size = max(len(words) // 5, 10)
        wpms = self._segment_wpms(words, size, size, min_len=3)
        return {
            "trajectory": self._pace_trajectory(wpms),
            "consistency": speaking.pace_consistency,
            "variation_type": self._pace_variation_type(wpms),
            "wpm_range": [round(min(wpms)), round(max(wpms))] if wpms else [0, 0],
            "average_wpm": speaking.words_per_minute,
        }

    @staticmethod
    def _pace_trajectory(wpms: List[float]) -> str:
        if len(wpms) < 3:
            return "insufficient_data"
        third = len(wpms) // 3
        first = float(np.mean(wpms[:third]))
        middle = float(np.mean(wpms[third:2 * len(wpms) // 3]))
        last = float(np.mean(wpms[2 * len(wpms) // 3:]))

        if middle > first * 1.2 and last < middle * 0.9:
            return "starts_slow_rushes_middle_settles"
        if middle > first * 1.15:
            return "starts_slow_accelerates"
        if first > last * 1.15:
            return "starts_fast_decelerates"
        if abs(first - last) < first * 0.1:
            return "consistent_throughout"
        return "variable"

    @staticmethod
    def _pace_variation_type(wpms: List[float]) -> str:
        if not wpms:
            return "unknown"
        cv = coefficient_of_variation(wpms)
        if cv > 0.3:
            return "high_variance"
        if cv > 0.2:
            return "moderate_variance"
        if cv < 0.1:
            return "very_consistent"
        return "low_variance"

    @staticmethod
    def _energy_patterns(engagement: EngagementMetrics) -> Dict:
        energy = engagement.energy_level
        if energy < 40:
            pattern = "low_energy_throughout"
        elif energy > 75:
            pattern = "high_energy_throughout"
        else:
            pattern = "moderate_energy"

        elements = []
        if engagement.exclamation_usage:
            elements.append(f"{engagement.exclamation_usage} exclamations")
        if engagement.question_usage:
            elements.append(f"{engagement.question_usage} questions")

        return {
            "overall_level": energy,
            "pattern": pattern,
            "engagement_elements": elements,
            "needs_boost": energy < 50,
        }

    @staticmethod
    def _smoothness_breakdown(clarity: ClarityMetrics, fluency: FluencyMetrics) -> Dict:
        smoothness = fluency.speech_smoothness
        pause_quality = clarity.pause_metrics.pause_quality_score

        if fluency.hesitation_count > 5:
            primary = "frequent_hesitations"
        elif fluency.restart_count > 3:
            primary = "frequent_restarts"
        elif pause_quality < 50:
            primary = "irregular_pauses"
        elif smoothness < 60:
            primary = "choppy_word_delivery"
        else:
            primary = None

        return {
            "word_flow_score": round(smoothness * 0.6 + pause_quality * 0.4, 1),
            "pause_consistency_score": pause_quality,
            "primary_issue": primary,
            "hesitation_count": fluency.hesitation_count,
            "restart_count": fluency.restart_count,
        }

    def _hesitation_analysis(self, filler: FillerMetrics) -> Dict:
        breakdown = filler.filler_breakdown
        counted = {k: v for k, v in breakdown.items() if v > 0}
        most_common = max(counted, key=counted.get) if counted else None
        return {
            "total_count": filler.total_filler_count,
            "rate_percentage": filler.filler_rate_percentage,
            "most_common": most_common,
            "breakdown": breakdown,
            "typical_locations": self._hesitation_locations(),
            "density": filler.filler_density,
        }

    def _hesitation_locations(self) -> str:
        sentences = [s for s in _SENTENCE_SPLIT.split(self._text().lower()) if s.strip()]
        if not sentences:
            return "distributed_throughout"
        starts = 0
        for sentence in sentences:
            tokens = sentence.split()
            if tokens and _SENTENCE_START_FILLER.match(tokens[0]):
                starts += 1
        if starts > len(sentences) * 0.5:
            return "mostly_at_sentence_starts"
        return "distributed_throughout"
