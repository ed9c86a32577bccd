import json
from types import MappingProxyType

import pytest

from speaking_coach.config import ConfigurationError
from speaking_coach.models.schemas import AnalysisType, AnalysisValidationError
from speaking_coach.services.prompt_registry import (
    PLACEHOLDER,
    MalformedOutputError,
    PromptTemplateRegistry,
)

from fakes import SAMPLE_PAYLOAD, VISUALIZATION_JSON


def _templates(**overrides) -> dict[AnalysisType, str]:
    templates = {t: f"Analyze for {t.value}.\n\n{PLACEHOLDER}\n" for t in AnalysisType}
    templates.update({AnalysisType(k): v for k, v in overrides.items()})
    return templates


@pytest.mark.parametrize("analysis_type", list(AnalysisType))
def test_builtin_templates_inject_payload(registry, analysis_type):
    prompt = registry.build_prompt(analysis_type, SAMPLE_PAYLOAD)

    assert json.dumps(SAMPLE_PAYLOAD, indent=2, ensure_ascii=False) in prompt
    assert PLACEHOLDER not in prompt


def test_templates_differ_per_type(registry):
    prompts = {registry.build_prompt(t, SAMPLE_PAYLOAD) for t in AnalysisType}
    assert len(prompts) == len(AnalysisType)


def test_build_prompt_accepts_type_value():
    registry = PromptTemplateRegistry(_templates())
    prompt = registry.build_prompt("action_fixes", {"a": 1})

    assert prompt.startswith("Analyze for action_fixes.")


def test_non_ascii_payload_is_not_escaped():
    registry = PromptTemplateRegistry(_templates())
    prompt = registry.build_prompt(AnalysisType.EXECUTIVE_SUMMARY, {"transcript": "Привет, мир"})

    assert "Привет, мир" in prompt


def test_unknown_type_is_rejected():
    registry = PromptTemplateRegistry(_templates())

    with pytest.raises(AnalysisValidationError, match="Invalid analysis type"):
        registry.build_prompt("detailed_review", SAMPLE_PAYLOAD)


@pytest.mark.parametrize("payload", [None, {}, [], [{"window": 1}], "text", 42])
def test_invalid_payload_is_rejected(payload):
    registry = PromptTemplateRegistry(_templates())

    with pytest.raises(AnalysisValidationError, match="Invalid analysis payload"):
        registry.build_prompt(AnalysisType.TIMEWISE_ANALYSIS, payload)


def test_read_only_mapping_payload_is_accepted():
    payload = MappingProxyType({"speech": MappingProxyType({"words_per_minute": 142})})
    registry = PromptTemplateRegistry(_templates())

    prompt = registry.build_prompt(AnalysisType.EXECUTIVE_SUMMARY, payload)

    assert json.dumps({"speech": {"words_per_minute": 142}}, indent=2) in prompt


def test_unserializable_payload_is_rejected():
    payload: dict = {"a": 1}
    payload["self"] = payload
    registry = PromptTemplateRegistry(_templates())

    with pytest.raises(AnalysisValidationError):
        registry.build_prompt(AnalysisType.TIMEWISE_ANALYSIS, payload)


def test_missing_template_is_configuration_error():
    templates = _templates()
    del templates[AnalysisType.VISUALIZATIONS]

    with pytest.raises(ConfigurationError) as exc_info:
        PromptTemplateRegistry(templates)

    assert exc_info.value.missing == ["visualizations"]


@pytest.mark.parametrize("template", ["No placeholder here", f"{PLACEHOLDER} and {PLACEHOLDER}"])
def test_placeholder_must_appear_once(template):
    with pytest.raises(ConfigurationError):
        PromptTemplateRegistry(_templates(action_fixes=template))


def test_templates_are_read_only():
    registry = PromptTemplateRegistry(_templates())

    with pytest.raises(TypeError):
        registry.templates[AnalysisType.ACTION_FIXES] = "changed"


def test_external_prompts_dir_overrides_builtin(settings, tmp_path):
    prompts_dir = tmp_path / "prompts"
    prompts_dir.mkdir()
    (prompts_dir / "action_fixes.md").write_text(f"Custom fixes prompt\n{PLACEHOLDER}", encoding="utf-8")
    settings.prompts_dir = prompts_dir

    registry = PromptTemplateRegistry.from_settings(settings)

    assert registry.build_prompt(AnalysisType.ACTION_FIXES, {"a": 1}).startswith("Custom fixes prompt")
    assert not registry.build_prompt(AnalysisType.EXECUTIVE_SUMMARY, {"a": 1}).startswith("Custom")


def test_prose_output_is_unchanged():
    registry = PromptTemplateRegistry(_templates())
    text = "SECTION A\n- Pace is steady"

    assert registry.normalize_output(AnalysisType.STRENGTHS_FAILURES, text) == text


def test_visualization_output_is_normalized():
    registry = PromptTemplateRegistry(_templates())
    text = f"Here is the data:\n```json\n{VISUALIZATION_JSON}\n```"

    result = registry.normalize_output(AnalysisType.VISUALIZATIONS, text)

    document = json.loads(result)
    assert set(document) == {"mismatchTimeline", "energyFusion", "opportunityMap", "interpretation"}
    assert document["mismatchTimeline"][0]["status"] == "weak_gap"
    assert "\n" not in result


@pytest.mark.parametrize(
    "text",
    [
        "Sorry, I cannot produce charts.",
        '{"mismatchTimeline": [], "energyFusion": []}',
        '{"mismatchTimeline": "none", "energyFusion": [], "opportunityMap": [], "interpretation": "x"}',
        '{"mismatchTimeline": [], "energyFusion": [], "opportunityMap": [], "interpretation": "x"',
    ],
)
def test_malformed_visualization_output_is_rejected(text):
    registry = PromptTemplateRegistry(_templates())

    with pytest.raises(MalformedOutputError):
        registry.normalize_output(AnalysisType.VISUALIZATIONS, text)
