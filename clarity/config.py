"""
Configuration for the transcript analysis engine.
"""
from pydantic import BaseModel
from pathlib import Path
import logging
import os

PACKAGE_RULES_DIR = Path(__file__).resolve().parent / "rules"


class Settings(BaseModel):
    """
    Runtime settings with environment-variable overrides.
    """
    RULES_DIR: Path = Path(os.getenv("CLARITY_RULES_DIR") or PACKAGE_RULES_DIR)
    DEFAULT_LANGUAGE: str = os.getenv("CLARITY_DEFAULT_LANGUAGE", "en")
    LOG_LEVEL: str = os.getenv("CLARITY_LOG_LEVEL", "INFO")

    def __init__(self, **data):
        super().__init__(**data)
        # Normalize language: strip whitespace, lower-case
        lang = (self.DEFAULT_LANGUAGE or "en").strip().lower() or "en"
        object.__setattr__(self, "DEFAULT_LANGUAGE", lang)

        level = (self.LOG_LEVEL or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            level = "INFO"
        object.__setattr__(self, "LOG_LEVEL", level)
