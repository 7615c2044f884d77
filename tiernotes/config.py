import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

CLASSIFIER_MODES = ("heuristic", "delegated")


@dataclass(frozen=True)
class Settings:
    classifier_mode: str = "heuristic"
    openai_api_key: Optional[str] = None
    llm_model: str = "gpt-3.5-turbo"
    llm_timeout: float = 30.0
    llm_max_input_chars: int = 15000
    min_sentence_length: int = 25
    max_pages: int = 15
    output_dir: str = "processed_notes"
    log_level: str = "INFO"


def get_settings() -> Settings:
    """
    Read settings from the environment (and a .env file, if present).
    """
    settings = Settings(
        classifier_mode=os.getenv("CLASSIFIER_MODE", "heuristic").strip().lower(),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        llm_model=os.getenv("LLM_MODEL", "gpt-3.5-turbo"),
        llm_timeout=float(os.getenv("LLM_TIMEOUT", "30")),
        llm_max_input_chars=int(os.getenv("LLM_MAX_INPUT_CHARS", "15000")),
        min_sentence_length=int(os.getenv("MIN_SENTENCE_LENGTH", "25")),
        max_pages=int(os.getenv("MAX_PAGES", "15")),
        output_dir=os.getenv("OUTPUT_DIR", "processed_notes"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    if settings.classifier_mode not in CLASSIFIER_MODES:
        raise RuntimeError(
            f"CLASSIFIER_MODE must be one of {', '.join(CLASSIFIER_MODES)}, "
            f"got {settings.classifier_mode!r}."
        )
    if settings.classifier_mode == "delegated" and not settings.openai_api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not set. Create a .env with your key or set env var, "
            "or use CLASSIFIER_MODE=heuristic."
        )
    return settings
