import logging

import pytest

from speaking_coach.config import (
    ConfigurationError,
    Settings,
    is_provider_enabled,
    load_prompt,
    validate_core_settings,
)
from speaking_coach.logging_config import setup_logging, short_logger_name


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_provider_disabled_by_flag():
    settings = _settings(external_ai_enabled=False, external_ai_api_url="http://analyzer.test/analyze/")
    assert is_provider_enabled(settings) is False


def test_provider_enabled_requires_url(caplog):
    settings = _settings(external_ai_enabled=True, external_ai_api_url="  ")

    with caplog.at_level(logging.WARNING):
        assert is_provider_enabled(settings) is False

    assert "EXTERNAL_AI_API_URL is empty" in caplog.text


def test_provider_enabled_with_url():
    settings = _settings(external_ai_enabled=True, external_ai_api_url="http://analyzer.test/analyze/")
    assert is_provider_enabled(settings) is True


def test_validate_core_settings_lists_missing_variables():
    settings = _settings(gemini_api_key="", gemini_model=" ")

    with pytest.raises(ConfigurationError) as exc_info:
        validate_core_settings(settings)

    assert exc_info.value.missing == ["GEMINI_API_KEY", "GEMINI_MODEL"]
    assert "GEMINI_API_KEY" in str(exc_info.value)


def test_validate_core_settings_passes():
    validate_core_settings(_settings(gemini_api_key="key", gemini_model="gemini-2.5-flash"))


def test_load_prompt_builtin():
    prompt = load_prompt("direct_feedback", _settings())
    assert prompt.strip()


def test_load_prompt_external_override(tmp_path):
    (tmp_path / "direct_feedback.md").write_text("Custom direct prompt", encoding="utf-8")

    assert load_prompt("direct_feedback", _settings(prompts_dir=tmp_path)) == "Custom direct prompt"


def test_load_prompt_missing():
    with pytest.raises(FileNotFoundError, match="Prompt not found: nonexistent"):
        load_prompt("nonexistent", _settings())


def test_setup_logging_applies_module_levels():
    settings = _settings(log_level="WARNING", log_level_pipeline="DEBUG")
    pipeline_logger = logging.getLogger("speaking_coach.services.pipeline")

    try:
        setup_logging(settings)

        assert logging.getLogger().level == logging.WARNING
        assert pipeline_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("speaking_coach.perf").disabled is False
    finally:
        pipeline_logger.setLevel(logging.NOTSET)


def test_setup_logging_can_silence_perf_lines():
    perf_logger = logging.getLogger("speaking_coach.perf")

    try:
        setup_logging(_settings(log_perf=False))
        assert perf_logger.disabled is True
    finally:
        perf_logger.disabled = False



@pytest.mark.parametrize(
    "name, short",
    [
        ("speaking_coach.services.pipeline.orchestrator", "pipeline.orchestrator"),
        ("speaking_coach.api.routes", "api.routes"),
        ("speaking_coach.perf", "perf"),
        ("httpx", "httpx"),
    ],
)
def test_short_logger_name(name, short):
    assert short_logger_name(name) == short
