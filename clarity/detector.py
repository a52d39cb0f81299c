"""
Rule-based issue detection over a word-level transcript.
"""
from __future__ import annotations
import bisect
import logging
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from clarity.models import DetectorSummary, Issue, Transcript, Word
from clarity.rulepacks import (
    InvalidPattern,
    RegexMatcher,
    Rule,
    Rulepack,
    RulepackRegistry,
    SpecialPattern,
    SpecialPatternKind,
)
from clarity.stats import clamp, words_per_minute

logger = logging.getLogger(__name__)

FILLER_CATEGORY = "filler_words"
RATE_WINDOW_MS = 60_000
PACE_EXCERPT_CHARS = 100

# Lightweight summary score knobs
SUMMARY_FILLER_PENALTY = 2.0
SUMMARY_PACE_PENALTY = 10.0
SUMMARY_PACE_BAND = (120, 180)

CATEGORY_KINDS = {
    "filler_words": "filler_word",
    "pace_issues": "pace_issue",
    "clarity_issues": "clarity_issue",
    "professional_issues": "professionalism",
    "articulation_issues": "articulation",
    "repetition_issues": "repetition",
}


@dataclass(frozen=True)
class _Match:
    """A regex hit expressed as an inclusive token range."""
    first: int
    last: int


class RuleDetector:
    """
    Apply every rule of a compiled rulepack to one transcript.

    Regex rules are matched against the punctuated token stream and mapped
    back onto word timings; special patterns run hand-coded detectors.
    Empty or partial transcripts never raise: they yield no issues.
    """

    def __init__(self, transcript: Union[Transcript, dict, None], rulepack: Rulepack):
        if not isinstance(transcript, Transcript):
            transcript = Transcript.model_validate(transcript or {})
        self.transcript = transcript
        self.rulepack = rulepack
        self._tokens = [w.punctuated or w.raw for w in transcript.words]
        self._text, self._spans = self._index_tokens(self._tokens)
        self._span_starts = [s for s, _ in self._spans]

    @classmethod
    def for_language(
        cls,
        transcript: Union[Transcript, dict, None],
        language: str,
        registry: RulepackRegistry,
    ) -> "RuleDetector":
        return cls(transcript, registry.load_rules(language))

    @property
    def words(self) -> List[Word]:
        return self.transcript.words

    def detect_all_issues(self) -> List[Issue]:
        issues: List[Issue] = []
        rule_count = 0
        for category, rules in self.rulepack.categories.items():
            for rule in rules:
                issues.extend(self._detect_rule_issues(rule, category))
                rule_count += 1

        logger.debug(f"[detector] {len(issues)} issues from {rule_count} rules")
        return sorted(issues, key=lambda i: i.start_ms)

    def detect_category_issues(self, category) -> List[Issue]:
        category = str(category)
        issues: List[Issue] = []
        for rule in self.rulepack.rules_for_category(category):
            issues.extend(self._detect_rule_issues(rule, category))
        return sorted(issues, key=lambda i: i.start_ms)

    def calculate_metrics(self) -> DetectorSummary:
        """
        Quick companion summary: counts, WPM, uncapped filler rate and a
        rough clarity score. The full report lives in ``MetricsCalculator``.
        """
        word_count = len(self.words)
        duration_ms = self.transcript.duration_ms
        wpm = words_per_minute(word_count, duration_ms)

        filler_count = self.count_filler_matches()
        filler_rate = (filler_count / word_count * 100) if word_count else 0.0

        score = 100.0 - filler_rate * SUMMARY_FILLER_PENALTY
        lo, hi = SUMMARY_PACE_BAND
        if wpm > 0 and not (lo <= wpm <= hi):
            score -= SUMMARY_PACE_PENALTY

        return DetectorSummary(
            word_count=word_count,
            duration_ms=duration_ms,
            speaking_rate_wpm=round(wpm, 1),
            filler_word_rate=round(filler_rate, 2),
            clarity_score=round(clamp(score), 1),
        )

    def count_filler_matches(self) -> int:
        """Every filler-rule hit in the transcript text, ignoring rate caps."""
        text = self.transcript.full_text
        total = 0
        for rule in self.rulepack.rules_for_category(FILLER_CATEGORY):
            if isinstance(rule.matcher, RegexMatcher):
                total += sum(1 for m in rule.matcher.regex.finditer(text) if m.end() > m.start())
        return total

    # dispatch

    def _detect_rule_issues(self, rule: Rule, category: str) -> List[Issue]:
        match rule.matcher:
            case RegexMatcher():
                return self._detect_regex_issues(rule, category)
            case SpecialPattern(kind=SpecialPatternKind.SLOW_PACE):
                return self._detect_slow_pace(rule, category)
            case SpecialPattern(kind=SpecialPatternKind.FAST_PACE):
                return self._detect_fast_pace(rule, category)
            case SpecialPattern(kind=SpecialPatternKind.LONG_PAUSE):
                return self._detect_long_pauses(rule, category)
            case InvalidPattern():
                logger.debug(f"[detector] skipping invalid pattern {rule.pattern!r}")
                return []
        return []

    # regex rules

    @staticmethod
    def _index_tokens(tokens: List[str]) -> Tuple[str, List[Tuple[int, int]]]:
        spans = []
        pos = 0
        for tok in tokens:
            spans.append((pos, pos + len(tok)))
            pos += len(tok) + 1
        return " ".join(tokens), spans

    def _tokens_covering(self, start: int, end: int) -> Optional[_Match]:
        """Inclusive range of tokens overlapping the character span [start, end)."""
        i = bisect.bisect_right(self._span_starts, start) - 1
        if i < 0 or self._spans[i][1] <= start:
            i += 1
        if i >= len(self._spans) or self._spans[i][0] >= end:
            return None
        j = bisect.bisect_left(self._span_starts, end) - 1
        return _Match(first=i, last=max(i, j))

    def _find_matches(self, rule: Rule) -> List[_Match]:
        matches = []
        for m in rule.matcher.regex.finditer(self._text):
            if m.end() == m.start():
                continue
            hit = self._tokens_covering(m.start(), m.end())
            if hit is not None:
                matches.append(hit)
        return matches

    def _rate_limit(self, matches: List[_Match], rule: Rule) -> List[_Match]:
        """Drop matches once ``max_matches_per_minute`` were accepted in the trailing minute."""
        cap = rule.max_matches_per_minute
        if not cap:
            return matches

        accepted: List[_Match] = []
        window: deque = deque()
        for match in matches:
            start_ms = self.words[match.first].start_ms
            while window and window[0] <= start_ms - RATE_WINDOW_MS:
                window.popleft()
            if len(window) >= cap:
                continue
            window.append(start_ms)
            accepted.append(match)

        suppressed = len(matches) - len(accepted)
        if suppressed:
            logger.debug(f"[detector] rate cap suppressed {suppressed} matches of {rule.pattern!r}")
        return accepted

    @staticmethod
    def _group_matches(matches: List[_Match], context_window: int) -> List[List[_Match]]:
        """Merge neighbours whose token distance is below the context window."""
        groups: List[List[_Match]] = []
        for match in matches:
            if groups and match.first - groups[-1][-1].last < context_window:
                groups[-1].append(match)
            else:
                groups.append([match])
        return groups

    def _detect_regex_issues(self, rule: Rule, category: str) -> List[Issue]:
        if not self.words:
            return []
        matches = self._find_matches(rule)
        if not matches or len(matches) < rule.min_matches:
            return []

        matches = self._rate_limit(matches, rule)
        kind = CATEGORY_KINDS.get(category, "other")
        issues = []
        for group in self._group_matches(matches, rule.context_window):
            first, last = group[0].first, group[-1].last
            ctx_start = max(0, first - rule.context_window)
            ctx_end = min(len(self._tokens) - 1, last + rule.context_window)
            matched = [
                " ".join(self._tokens[m.first:m.last + 1]) for m in group
            ]
            issues.append(Issue(
                kind=kind,
                category=category,
                severity=rule.severity,
                text=" ".join(self._tokens[ctx_start:ctx_end + 1]),
                start_ms=self.words[first].start_ms,
                end_ms=max(self.words[first].start_ms, self.words[last].end_ms),
                rationale=rule.description,
                tip=rule.tip,
                pattern=rule.pattern,
                matched_words=matched,
            ))
        return issues

    # special patterns

    def _speaking_rate(self) -> float:
        return words_per_minute(len(self.words), self.transcript.duration_ms)

    def _pace_issue(self, kind: str, rule: Rule, category: str, rate: float) -> Issue:
        return Issue(
            kind=kind,
            category=category,
            severity=rule.severity,
            text=self.transcript.full_text[:PACE_EXCERPT_CHARS] + "...",
            start_ms=0,
            end_ms=self.transcript.duration_ms,
            rationale=rule.description,
            tip=rule.tip,
            pattern=rule.pattern,
            speaking_rate=round(rate, 1),
        )

    def _detect_slow_pace(self, rule: Rule, category: str) -> List[Issue]:
        rate = self._speaking_rate()
        if rate > 0 and rate < rule.matcher.threshold:
            return [self._pace_issue("pace_too_slow", rule, category, rate)]
        return []

    def _detect_fast_pace(self, rule: Rule, category: str) -> List[Issue]:
        rate = self._speaking_rate()
        if rate > rule.matcher.threshold:
            return [self._pace_issue("pace_too_fast", rule, category, rate)]
        return []

    def _detect_long_pauses(self, rule: Rule, category: str) -> List[Issue]:
        issues = []
        for prev, nxt in zip(self.words, self.words[1:]):
            pause_ms = nxt.start_ms - prev.end_ms
            if pause_ms <= rule.matcher.threshold:
                continue
            issues.append(Issue(
                kind="long_pause",
                category=category,
                severity=rule.severity,
                text=f"{prev.punctuated}... [pause: {pause_ms / 1000.0}s] ...{nxt.punctuated}",
                start_ms=prev.end_ms,
                end_ms=nxt.start_ms,
                rationale=rule.description,
                tip=rule.tip,
                pattern=rule.pattern,
                pause_duration_ms=pause_ms,
            ))
        return issues
