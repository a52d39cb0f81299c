# clarity/pipeline.py
from __future__ import annotations
from typing import Optional, Union
import logging

from clarity.config import Settings
from clarity.detector import RuleDetector
from clarity.metrics import MetricsCalculator
from clarity.models import AnalysisResponse, Transcript
from clarity.rulepacks import RulepackRegistry, get_default_registry

logger = logging.getLogger(__name__)


def analyze_transcript(
    transcript: Union[Transcript, dict, None],
    language: Optional[str] = None,
    registry: Optional[RulepackRegistry] = None,
    settings: Optional[Settings] = None,
) -> AnalysisResponse:
    """
    Detect issues and score one transcript.

    Language resolution: explicit argument, then the transcript metadata,
    then ``settings.DEFAULT_LANGUAGE``. Raises ``RuleLoadError`` when that
    language has no usable rule file and ``MetricsError`` when scoring fails.
    """
    settings = settings or Settings()
    registry = registry or get_default_registry()
    if not isinstance(transcript, Transcript):
        transcript = Transcript.model_validate(transcript or {})

    language = language or transcript.metadata.language or settings.DEFAULT_LANGUAGE
    logger.debug(f"[pipeline] analyze_transcript start language={language} words={len(transcript.words)}")

    rulepack = registry.load_rules(language)
    detector = RuleDetector(transcript, rulepack)
    issues = detector.detect_all_issues()
    summary = detector.calculate_metrics()

    logger.debug(f"[pipeline] computing metrics with {len(issues)} issues")
    metrics = MetricsCalculator(transcript, issues, language=language, rulepack=rulepack).calculate_all_metrics()

    logger.debug("[pipeline] analyze_transcript finished successfully")
    return AnalysisResponse(language=language, issues=issues, summary=summary, metrics=metrics)
