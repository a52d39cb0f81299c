import pytest

import clarity.metrics as metrics_mod
from clarity.metrics import (
    CLARITY_WEIGHTS,
    OVERALL_WEIGHTS,
    MetricsCalculator,
    MetricsError,
    assess_speaking_rate,
    score_speaking_pace,
    score_to_grade,
)
from clarity.models import Issue
from clarity.rulepacks import parse_rules
from conftest import FILLER_RULE, make_transcript


@pytest.fixture
def six_second_transcript():
    return make_transcript(duration_ms=6000)


def _scores(m):
    return [
        m.speaking.pace_consistency,
        m.clarity.clarity_score,
        m.clarity.articulation_score,
        m.clarity.pause_metrics.pause_quality_score,
        m.fluency.fluency_score,
        m.fluency.speech_smoothness,
        m.engagement.energy_level,
        m.engagement.pace_variation,
        m.engagement.engagement_score,
        m.overall.overall_score,
        *m.clarity.clarity_components.values(),
        *m.overall.component_scores.model_dump().values(),
    ]


def test_weights_sum_to_one():
    assert sum(CLARITY_WEIGHTS.values()) == pytest.approx(1.0)
    assert sum(OVERALL_WEIGHTS.values()) == pytest.approx(1.0)


def test_assess_speaking_rate():
    assert assess_speaking_rate(100) == "too_slow"
    assert assess_speaking_rate(130) == "slow"
    assert assess_speaking_rate(150) == "optimal"
    assert assess_speaking_rate(170) == "fast"
    assert assess_speaking_rate(200) == "too_fast"
    assert assess_speaking_rate(120) == "slow"
    assert assess_speaking_rate(140) == "optimal"
    assert assess_speaking_rate(180) == "fast"


def test_score_speaking_pace_and_grade():
    assert score_speaking_pace(150) == 100
    assert score_speaking_pace(130) == 85
    assert score_speaking_pace(10) == 30
    assert score_to_grade(95) == "A"
    assert score_to_grade(85) == "B"
    assert score_to_grade(70) == "C"
    assert score_to_grade(59.9) == "F"


def test_basic_and_speaking(six_second_transcript):
    m = MetricsCalculator(six_second_transcript).calculate_all_metrics()
    assert m.basic.word_count == 13
    assert m.basic.duration_ms == 6000
    assert m.basic.duration_seconds == 6.0
    assert m.basic.speaking_time_ms + m.basic.pause_time_ms == 6000
    assert m.speaking.words_per_minute == pytest.approx(130.0)
    assert m.speaking.speaking_rate_assessment == "slow"


def test_scores_in_bounds(six_second_transcript):
    m = MetricsCalculator(six_second_transcript).calculate_all_metrics()
    for score in _scores(m):
        assert 0 <= score <= 100
    assert 0 <= m.calculation_metadata.confidence_level <= 1
    assert m.overall.grade == score_to_grade(m.overall.overall_score)


def test_builtin_fillers(six_second_transcript):
    filler = MetricsCalculator(six_second_transcript).calculate_clarity_metrics().filler_metrics
    assert filler.total_filler_count == 2
    assert filler.filler_breakdown["um"] == 1
    assert filler.filler_breakdown["uh"] == 1
    assert filler.filler_breakdown["like"] == 0
    assert filler.filler_rate_percentage == pytest.approx(15.38)
    assert filler.filler_density == "very_high"


def test_rulepack_fillers(six_second_transcript):
    pack = parse_rules("en", {"filler_words": [dict(FILLER_RULE)]})
    filler = MetricsCalculator(six_second_transcript, rulepack=pack).calculate_clarity_metrics().filler_metrics
    assert filler.filler_breakdown == {"um": 1, "uh": 1}


def test_pause_metrics(six_second_transcript):
    pauses = MetricsCalculator(six_second_transcript).calculate_clarity_metrics().pause_metrics
    # gaps over 100ms: 200 (Um->hello) and 500 (everyone->This)
    assert pauses.total_pause_count == 2
    assert pauses.longest_pause_ms == 500
    assert pauses.pause_distribution["optimal"].count == 2
    assert pauses.pause_quality_score == 100


def test_articulation_issues_lower_score(six_second_transcript):
    base = MetricsCalculator(six_second_transcript).calculate_clarity_metrics().articulation_score
    issue = Issue(kind="articulation", category="articulation_issues", severity="low", text="x", start_ms=0, end_ms=1)
    lowered = MetricsCalculator(six_second_transcript, issues=[issue]).calculate_clarity_metrics().articulation_score
    assert lowered == pytest.approx(base - 10, abs=0.11)


def test_long_pause_issues_count_as_interruptions(six_second_transcript):
    issues = [{"kind": "long_pause"}, {"kind": "filler_word"}]
    fluency = MetricsCalculator(six_second_transcript, issues=issues).calculate_fluency_metrics()
    assert fluency.flow_interruptions >= 1
    assert fluency.hesitation_count == 2


@pytest.mark.parametrize("data", [{}, None, {"text": None, "words": None, "metadata": None}])
def test_empty_input(data):
    m = MetricsCalculator(data).calculate_all_metrics()
    assert m.basic.word_count == 0
    assert m.speaking.words_per_minute == 0
    assert m.speaking.speaking_rate_assessment == "unknown"
    assert m.calculation_metadata.transcript_quality == "very_low"
    for score in _scores(m):
        assert 0 <= score <= 100


def test_errors_wrapped(monkeypatch, six_second_transcript):
    def boom(self):
        raise RuntimeError("bad words")
    monkeypatch.setattr(metrics_mod.MetricsCalculator, "_extract_words", boom)
    calc = MetricsCalculator(six_second_transcript)
    with pytest.raises(MetricsError, match="bad words"):
        calc.calculate_all_metrics()
    assert calc.extract_coaching_insights() == {}


def test_uncoercible_transcript_wrapped():
    bad_start = make_transcript()
    bad_start["words"][0]["start_ms"] = "abc"
    with pytest.raises(MetricsError, match="Failed to calculate metrics"):
        MetricsCalculator(bad_start).calculate_all_metrics()

    fractional = make_transcript(duration_ms=6000.5)
    with pytest.raises(MetricsError, match="Failed to calculate metrics"):
        MetricsCalculator(fractional).calculate_all_metrics()
    assert MetricsCalculator(fractional).extract_coaching_insights() == {}


def test_overall_highlights(six_second_transcript):
    overall = MetricsCalculator(six_second_transcript).calculate_overall_scores()
    assert len(overall.strengths) <= 3
    assert len(overall.areas_for_improvement) <= 3
    assert overall.improvement_potential in ("minimal", "moderate", "significant", "high")


def test_coaching_insights(six_second_transcript):
    insights = MetricsCalculator(six_second_transcript).extract_coaching_insights()
    assert set(insights) == {
        "pause_patterns",
        "pace_patterns",
        "energy_patterns",
        "smoothness_breakdown",
        "hesitation_analysis",
    }
    assert insights["hesitation_analysis"]["total_count"] == 2
    assert insights["hesitation_analysis"]["most_common"] in ("um", "uh")
    assert insights["pause_patterns"]["quality_breakdown"] == "mostly_optimal"
