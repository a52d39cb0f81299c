import pytest

from clarity.config import Settings
from clarity.pipeline import analyze_transcript
from clarity.rulepacks import RuleLoadError
from conftest import FILLER_RULE, write_rules


def test_analyze_transcript(sample_transcript_data, registry):
    res = analyze_transcript(sample_transcript_data, registry=registry)
    assert res.language == "en"
    kinds = [i.kind for i in res.issues]
    assert kinds.count("filler_word") == 2
    assert "pace_too_slow" in kinds
    assert [i.start_ms for i in res.issues] == sorted(i.start_ms for i in res.issues)
    assert res.summary.word_count == 13
    assert res.metrics.basic.duration_ms == 7000
    # rulepack fillers drive the metrics breakdown
    assert res.metrics.clarity.filler_metrics.filler_breakdown == {"um": 1, "uh": 1}


def test_language_resolution(sample_transcript_data, registry, rules_dir):
    write_rules(rules_dir, "pt", {"filler_words": [{"pattern": r"\btipo\b"}]})
    sample_transcript_data["metadata"]["language"] = "pt"
    assert analyze_transcript(sample_transcript_data, registry=registry).language == "pt"
    # explicit argument wins over metadata
    assert analyze_transcript(sample_transcript_data, language="en", registry=registry).language == "en"

    sample_transcript_data["metadata"]["language"] = ""
    res = analyze_transcript(sample_transcript_data, registry=registry, settings=Settings(DEFAULT_LANGUAGE="pt"))
    assert res.language == "pt"


def test_missing_rules_raise(sample_transcript_data, registry):
    with pytest.raises(RuleLoadError, match="not found"):
        analyze_transcript(sample_transcript_data, language="xx", registry=registry)


def test_empty_transcript(registry):
    res = analyze_transcript({}, registry=registry)
    assert res.issues == []
    assert res.metrics.speaking.speaking_rate_assessment == "unknown"
