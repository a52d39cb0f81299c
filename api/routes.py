"""
REST endpoints for transcript analysis and rule administration.
"""
from fastapi import APIRouter, HTTPException, Query
import logging

from clarity.config import Settings
from clarity.metrics import MetricsError
from clarity.models import AnalysisResponse, Transcript
from clarity.pipeline import analyze_transcript
from clarity.rulepacks import RuleLoadError, RulesNotFoundError, get_default_registry


router = APIRouter()
settings = Settings()
registry = get_default_registry()
logger = logging.getLogger(__name__)


def _rule_error_status(e: RuleLoadError) -> int:
    return 404 if isinstance(e, RulesNotFoundError) else 422


@router.post("/analyze", response_model=AnalysisResponse)
def analyze(
    transcript: Transcript,
    language: str | None = Query(None),
):
    """
    Analyze a word-level transcript: detect rule issues and compute the
    scored metrics report.

    Args:
        transcript: Transcript payload from the transcription step.
        language: Optional rulepack language override.

    Returns:
        AnalysisResponse: Issues, detector summary and metrics.
    """
    logger.debug(f"[api] /analyze words={len(transcript.words)} language={language}")
    try:
        return analyze_transcript(transcript, language=language, registry=registry, settings=settings)
    except RuleLoadError as e:
        logger.warning(f"[api] rule load failed: {e}")
        raise HTTPException(status_code=_rule_error_status(e), detail=str(e))
    except MetricsError as e:
        logger.exception("[api] metrics calculation failed")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/rules/languages")
def rule_languages():
    return {"languages": registry.available_languages()}


@router.get("/rules/{language}/validate")
def validate_rules(language: str):
    """
    Validate every rule of a language without failing on individual rules.
    """
    try:
        errors = registry.validate_rules(language)
    except RuleLoadError as e:
        raise HTTPException(status_code=_rule_error_status(e), detail=str(e))
    return {"language": language, "valid": not errors, "errors": errors}


@router.post("/rules/reload")
def reload_rules():
    registry.reload_rules()
    logger.info("[api] rule cache cleared")
    return {"status": "reloaded"}
