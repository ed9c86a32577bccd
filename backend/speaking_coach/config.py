"""
Application configuration and settings.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# Built-in prompt templates shipped with the package
BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or inconsistent."""

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # General-purpose model (Gemini)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    llm_timeout: float = 300.0
    file_poll_interval: float = 2.0  # Seconds between remote file state checks
    file_processing_timeout: float = 180.0

    # Specialized analyzer (provider)
    external_ai_enabled: bool = False
    external_ai_api_url: str = "http://10.59.19.205:9000/analyze/"
    external_ai_api_key: str | None = None
    external_ai_timeout: float = 240.0
    external_ai_max_retries: int = 3
    retry_base_delay: float = 1.0
    provider_health_timeout: float = 5.0

    # Storage
    database_url: str = "sqlite+aiosqlite:///./speaking_coach.db"
    auto_create_db_schema: bool = True
    video_root: Path = Path("/data/videos")
    default_mime_type: str = "video/mp4"
    prompts_dir: Path | None = None  # External prompts directory (overrides built-in)

    # Logging
    log_level: str = "INFO"
    log_format: str = "structured"  # "simple" or "structured"
    log_perf: bool = True  # PERF lines on the speaking_coach.perf logger

    # Per-module log levels (optional overrides)
    log_level_ai_client: str | None = None
    log_level_pipeline: str | None = None
    log_level_store: str | None = None
    log_level_api: str | None = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def is_provider_enabled(settings: Settings) -> bool:
    """
    Check whether the specialized analyzer should be called.

    The feature flag alone is not enough: an enabled provider without
    an endpoint URL is treated as disabled.

    Args:
        settings: Application settings

    Returns:
        True if the provider is enabled and has an endpoint
    """
    if not settings.external_ai_enabled:
        return False

    if not settings.external_ai_api_url.strip():
        logger.warning(
            "EXTERNAL_AI_ENABLED is set but EXTERNAL_AI_API_URL is empty, "
            "provider disabled"
        )
        return False

    return True


def validate_core_settings(settings: Settings) -> None:
    """
    Verify that settings required for any analysis are present.

    Args:
        settings: Application settings

    Raises:
        ConfigurationError: If one or more required variables are missing
    """
    missing = []
    if not settings.gemini_api_key.strip():
        missing.append("GEMINI_API_KEY")
    if not settings.gemini_model.strip():
        missing.append("GEMINI_MODEL")

    if missing:
        raise ConfigurationError(
            f"Missing required configuration: {', '.join(missing)}",
            missing=missing,
        )


def load_prompt(name: str, settings: Settings | None = None) -> str:
    """
    Load a prompt template with external folder priority.

    Lookup order (first found wins):
    1. prompts_dir/{name}.md (external)
    2. speaking_coach/prompts/{name}.md (built-in)

    Args:
        name: Prompt name without extension (e.g. "executive_summary")
        settings: Optional settings instance

    Returns:
        Prompt template content

    Raises:
        FileNotFoundError: If no matching prompt file is found
    """
    if settings is None:
        settings = get_settings()

    paths_to_check: list[Path] = []
    if settings.prompts_dir and settings.prompts_dir.exists():
        paths_to_check.append(settings.prompts_dir / f"{name}.md")
    paths_to_check.append(BUILTIN_PROMPTS_DIR / f"{name}.md")

    for path in paths_to_check:
        if path.exists():
            return path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"Prompt not found: {name}. "
        f"Checked paths: {[str(p) for p in paths_to_check]}"
    )
