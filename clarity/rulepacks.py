"""
Rulepack loading, pattern compilation and the per-process rule cache.

A rule file (``<rules_dir>/<language>.json``) maps category names to lists
of rule entries. Each entry's ``pattern`` is either a case-insensitive
regular expression or one of the reserved special-pattern identifiers
handled by dedicated detector code:

    speaking_rate_below_<wpm>
    speaking_rate_above_<wpm>
    long_pause_over_<n>s | long_pause_over_<n>ms
"""
from __future__ import annotations
import enum
import json
import logging
import re
import threading
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from clarity.config import Settings

logger = logging.getLogger(__name__)

VALID_SEVERITIES = ("low", "medium", "high")
DEFAULT_CONTEXT_WINDOW = 5

_LANGUAGE_RE = re.compile(r"^[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})?$")
_RATE_PATTERN_RE = re.compile(r"^speaking_rate_(below|above)_(\d+(?:\.\d+)?)$")
_PAUSE_PATTERN_RE = re.compile(r"^long_pause_over_(\d+(?:\.\d+)?)(ms|s)$")


class RuleLoadError(Exception):
    """Rule file for a language is missing or cannot be parsed."""


class RulesNotFoundError(RuleLoadError):
    """No rule file exists for the requested language."""


class SpecialPatternKind(str, enum.Enum):
    SLOW_PACE = "slow_pace"
    FAST_PACE = "fast_pace"
    LONG_PAUSE = "long_pause"


@dataclass(frozen=True)
class SpecialPattern:
    """Hand-coded detector tag. ``threshold`` is WPM for pace, ms for pauses."""
    kind: SpecialPatternKind
    threshold: float


@dataclass(frozen=True)
class RegexMatcher:
    regex: re.Pattern


@dataclass(frozen=True)
class InvalidPattern:
    """Pattern that failed to compile; matches nothing."""
    reason: str


RuleMatcher = Union[RegexMatcher, SpecialPattern, InvalidPattern]


def compile_pattern(pattern) -> RuleMatcher:
    """
    Compile a rule pattern into a matcher.

    Reserved special-pattern identifiers are recognized first; anything else
    is compiled as a case-insensitive regex. Compilation failures are logged
    and yield an ``InvalidPattern`` rather than raising.
    """
    if not isinstance(pattern, str):
        return InvalidPattern(reason=f"pattern must be a string, got {type(pattern).__name__}")

    m = _RATE_PATTERN_RE.match(pattern)
    if m:
        kind = SpecialPatternKind.SLOW_PACE if m.group(1) == "below" else SpecialPatternKind.FAST_PACE
        return SpecialPattern(kind=kind, threshold=float(m.group(2)))

    m = _PAUSE_PATTERN_RE.match(pattern)
    if m:
        value = float(m.group(1))
        ms = value * 1000 if m.group(2) == "s" else value
        return SpecialPattern(kind=SpecialPatternKind.LONG_PAUSE, threshold=ms)

    try:
        return RegexMatcher(regex=re.compile(pattern, re.IGNORECASE))
    except re.error as e:
        logger.warning("Invalid regex pattern: %s - %s", pattern, e)
        return InvalidPattern(reason=str(e))


class RuleEntry(BaseModel):
    """Raw rule entry as written in a rule file."""
    pattern: str
    description: Optional[str] = None
    tip: Optional[str] = None
    severity: str = "low"
    category: Optional[str] = None
    min_matches: int = Field(default=1, ge=1)
    max_matches_per_minute: Optional[int] = Field(default=None, ge=1)
    context_window: int = Field(default=DEFAULT_CONTEXT_WINDOW, ge=0)


@dataclass(frozen=True)
class Rule:
    pattern: str
    matcher: RuleMatcher
    category: str
    severity: str
    description: Optional[str] = None
    tip: Optional[str] = None
    min_matches: int = 1
    context_window: int = DEFAULT_CONTEXT_WINDOW
    max_matches_per_minute: Optional[int] = None
    position: int = 0

    @classmethod
    def from_entry(cls, entry: RuleEntry, category: str, position: int = 0) -> "Rule":
        return cls(
            pattern=entry.pattern,
            matcher=compile_pattern(entry.pattern),
            category=entry.category or category,
            severity=entry.severity,
            description=entry.description,
            tip=entry.tip,
            min_matches=entry.min_matches,
            context_window=entry.context_window,
            max_matches_per_minute=entry.max_matches_per_minute,
            position=position,
        )


@dataclass(frozen=True)
class Rulepack:
    """Compiled, read-only rules for one language, keyed by category."""
    language: str
    categories: Mapping[str, Tuple[Rule, ...]] = field(default_factory=dict)
    load_problems: Tuple[str, ...] = ()

    @classmethod
    def build(cls, language: str, categories: Dict[str, List[Rule]], load_problems=()) -> "Rulepack":
        frozen = {name: tuple(rules) for name, rules in categories.items()}
        return cls(language=language, categories=MappingProxyType(frozen), load_problems=tuple(load_problems))

    def rules_for_category(self, category) -> List[Rule]:
        return list(self.categories.get(str(category), ()))

    def all_categories(self) -> List[str]:
        return list(self.categories.keys())

    @property
    def rule_count(self) -> int:
        return sum(len(rules) for rules in self.categories.values())


def parse_rules(language: str, raw) -> Rulepack:
    """
    Turn decoded rule-file content into a Rulepack.

    Malformed categories or entries are skipped with a warning and recorded
    in ``load_problems``; only a non-mapping top level is fatal.
    """
    if isinstance(raw, dict) and set(raw.keys()) == {language} and isinstance(raw[language], dict):
        raw = raw[language]
    if not isinstance(raw, dict):
        raise RuleLoadError(f"Failed to load rules for {language}: top level must be a mapping of categories")

    categories: Dict[str, List[Rule]] = {}
    problems: List[str] = []
    for category, entries in raw.items():
        if not isinstance(entries, list):
            msg = f"{category}: Category must be a list of rules"
            logger.warning("[rulepacks] %s skipped: %s", language, msg)
            problems.append(msg)
            continue

        rules: List[Rule] = []
        for index, data in enumerate(entries):
            rule_id = f"{category}[{index}]"
            if not isinstance(data, dict) or not isinstance(data.get("pattern"), str):
                msg = f"{rule_id}: Missing pattern"
                logger.warning("[rulepacks] %s skipped: %s", language, msg)
                problems.append(msg)
                continue
            try:
                entry = RuleEntry.model_validate(data)
            except ValidationError as e:
                fields = ", ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                )
                msg = f"{rule_id}: Malformed rule ({fields})"
                logger.warning("[rulepacks] %s skipped: %s", language, msg)
                problems.append(msg)
                continue
            rules.append(Rule.from_entry(entry, category, index))
        categories[category] = rules

    return Rulepack.build(language, categories, problems)


def validate_rule(category: str, index: int, rule: Rule) -> Optional[str]:
    errors = []
    if not rule.pattern:
        errors.append("Missing pattern")
    if not rule.description:
        errors.append("Missing description")
    if not rule.tip:
        errors.append("Missing tip")
    if rule.severity not in VALID_SEVERITIES:
        errors.append(f"Invalid severity '{rule.severity}'")
    if isinstance(rule.matcher, InvalidPattern):
        errors.append(f"Invalid regex pattern '{rule.pattern}'")
    if not errors:
        return None
    return f"{category}[{index}]: " + ", ".join(errors)


class RulepackRegistry:
    """
    Process-wide cache of compiled rulepacks, one per language.

    The first load of a language parses its file under a lock so concurrent
    first callers build it once; cached reads take no lock. ``reload_rules``
    drops every cached language.
    """

    def __init__(self, rules_dir: Path):
        self.rules_dir = Path(rules_dir)
        self._cache: Dict[str, Rulepack] = {}
        self._lock = threading.Lock()

    def rule_file(self, language: str) -> Path:
        if not isinstance(language, str) or not _LANGUAGE_RE.match(language):
            raise RuleLoadError(f"Invalid language code: {language}")
        return self.rules_dir / f"{language}.json"

    def load_rules(self, language: str = "en") -> Rulepack:
        rulepack = self._cache.get(language)
        if rulepack is not None:
            return rulepack

        with self._lock:
            rulepack = self._cache.get(language)
            if rulepack is None:
                rulepack = self._build(language)
                self._cache[language] = rulepack
        return rulepack

    def _build(self, language: str) -> Rulepack:
        path = self.rule_file(language)
        if not path.exists():
            raise RulesNotFoundError(f"Rules file not found for language: {language}")

        logger.debug(f"[rulepacks] reading {path}")
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RuleLoadError(f"Failed to load rules for {language}: {e}") from e

        rulepack = parse_rules(language, raw)
        logger.info(
            "[rulepacks] loaded %s: %d categories, %d rules",
            language, len(rulepack.categories), rulepack.rule_count,
        )
        return rulepack

    def reload_rules(self) -> None:
        with self._lock:
            self._cache = {}

    def is_cached(self, language: str) -> bool:
        return language in self._cache

    def available_languages(self) -> List[str]:
        if not self.rules_dir.is_dir():
            return []
        return sorted(p.stem for p in self.rules_dir.glob("*.json") if p.is_file())

    def rules_for_category(self, language: str, category) -> List[Rule]:
        return self.load_rules(language).rules_for_category(category)

    def all_categories(self, language: str = "en") -> List[str]:
        return self.load_rules(language).all_categories()

    def validate_rules(self, language: str = "en") -> List[str]:
        """
        Report problems with every rule of a language without raising.

        Returns human-readable strings such as
        ``"filler_words[1]: Missing tip, Invalid regex pattern '[oops'"``.
        """
        rulepack = self.load_rules(language)
        errors = list(rulepack.load_problems)
        for category, rules in rulepack.categories.items():
            for rule in rules:
                error = validate_rule(category, rule.position, rule)
                if error:
                    errors.append(error)
        return errors


@lru_cache
def get_default_registry() -> RulepackRegistry:
    """Registry bound to the configured rules directory, created once."""
    return RulepackRegistry(Settings().RULES_DIR)
