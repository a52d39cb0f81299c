import json
import pytest
from pathlib import Path

from clarity.rulepacks import RulepackRegistry

FILLER_RULE = {
    "pattern": r"\b(um|uh|er|ah)\b",
    "description": "Common filler words detected",
    "tip": "Try to pause instead of using filler words",
    "severity": "medium",
    "category": "filler_words",
    "min_matches": 1,
    "context_window": 3,
}

SLOW_PACE_RULE = {
    "pattern": "speaking_rate_below_120",
    "description": "Speaking rate is too slow",
    "tip": "Try to speak at a more natural pace",
    "severity": "low",
}

FAST_PACE_RULE = {
    "pattern": "speaking_rate_above_180",
    "description": "Speaking rate is too fast",
    "tip": "Try to slow down your speech",
    "severity": "medium",
}

LONG_PAUSE_RULE = {
    "pattern": "long_pause_over_3s",
    "description": "Long pause detected",
    "tip": "Try to maintain flow in your speech",
    "severity": "low",
}

SAMPLE_WORDS = [
    ("Um", "Um,", 0, 500, 0.9),
    ("hello", "hello", 700, 1200, 0.95),
    ("everyone", "everyone.", 1300, 2000, 0.92),
    ("This", "This", 2500, 2800, 0.88),
    ("is", "is,", 2900, 3100, 0.91),
    ("uh", "uh,", 3200, 3400, 0.85),
    ("a", "a", 3500, 3600, 0.98),
    ("test", "test", 3700, 4000, 0.96),
    ("recording", "recording", 4100, 4800, 0.93),
    ("with", "with", 4900, 5200, 0.89),
    ("some", "some", 5300, 5600, 0.94),
    ("filler", "filler", 5700, 6100, 0.87),
    ("words", "words.", 6200, 6800, 0.92),
]


def make_transcript(words=SAMPLE_WORDS, duration_ms=7000, text=None, language="en"):
    if text is None:
        text = "Um, hello everyone. This is, uh, a test recording with some filler words."
    return {
        "text": text,
        "words": [
            {"raw": r, "punctuated": p, "start_ms": s, "end_ms": e, "confidence": c}
            for r, p, s, e, c in words
        ],
        "metadata": {"duration_ms": duration_ms, "confidence": 0.91, "language": language},
    }


def write_rules(rules_dir: Path, language: str, content) -> Path:
    rules_dir.mkdir(parents=True, exist_ok=True)
    path = rules_dir / f"{language}.json"
    path.write_text(content if isinstance(content, str) else json.dumps(content), encoding="utf-8")
    return path


@pytest.fixture
def sample_transcript_data():
    return make_transcript()


@pytest.fixture
def rules_dir(tmp_path):
    d = tmp_path / "rules"
    write_rules(d, "en", {
        "filler_words": [dict(FILLER_RULE)],
        "pace_issues": [dict(SLOW_PACE_RULE)],
    })
    return d


@pytest.fixture
def registry(rules_dir):
    return RulepackRegistry(rules_dir)
