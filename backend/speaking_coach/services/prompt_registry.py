"""
Prompt template registry for analysis types.

One template per AnalysisType, each with a single {json_data} injection
point for the raw analysis payload. Templates are loaded once at
construction and never change afterwards.

Example:
    registry = PromptTemplateRegistry.from_settings(settings)
    prompt = registry.build_prompt(AnalysisType.ACTION_FIXES, payload)
    feedback = registry.normalize_output(AnalysisType.ACTION_FIXES, text)
"""

import json
import logging
from collections.abc import Mapping
from types import MappingProxyType

from pydantic import ValidationError

from speaking_coach.config import ConfigurationError, Settings, load_prompt
from speaking_coach.models.schemas import (
    AnalysisType,
    AnalysisValidationError,
    VisualizationDocument,
)
from speaking_coach.services.ai_clients.base import AIClientProcessingError
from speaking_coach.utils.json_utils import (
    check_payload_structure,
    dump_payload,
    extract_json,
)

logger = logging.getLogger(__name__)

PLACEHOLDER = "{json_data}"


class MalformedOutputError(AIClientProcessingError):
    """Model output does not match the machine-readable contract of its type."""

    pass


class PromptTemplateRegistry:
    """
    Lookup table of prompt templates keyed by AnalysisType.

    Attributes:
        templates: Read-only mapping AnalysisType -> template text
    """

    def __init__(self, templates: Mapping[AnalysisType, str]):
        """
        Initialize registry.

        Args:
            templates: Template per analysis type

        Raises:
            ConfigurationError: If a type has no template or a template
                does not contain exactly one {json_data} placeholder
        """
        missing = [t.value for t in AnalysisType if t not in templates]
        if missing:
            raise ConfigurationError(
                f"Missing prompt templates: {', '.join(missing)}",
                missing=missing,
            )

        for analysis_type, template in templates.items():
            count = template.count(PLACEHOLDER)
            if count != 1:
                raise ConfigurationError(
                    f"Prompt template '{analysis_type.value}' must contain "
                    f"{PLACEHOLDER} exactly once, found {count}"
                )

        self.templates = MappingProxyType(dict(templates))

    @classmethod
    def from_settings(cls, settings: Settings) -> "PromptTemplateRegistry":
        """
        Load all templates from prompt files.

        Args:
            settings: Application settings (prompts_dir override)

        Returns:
            Registry with one template per analysis type

        Raises:
            ConfigurationError: If a template file is missing or invalid
        """
        templates = {}
        for analysis_type in AnalysisType:
            try:
                templates[analysis_type] = load_prompt(analysis_type.value, settings)
            except FileNotFoundError as e:
                raise ConfigurationError(str(e), missing=[analysis_type.value]) from e

        logger.debug(f"Loaded {len(templates)} prompt templates")
        return cls(templates)

    def build_prompt(self, analysis_type: AnalysisType | str, raw_payload: object) -> str:
        """
        Build the prompt for an analysis type with the payload injected.

        Args:
            analysis_type: One of the known analysis types
            raw_payload: Raw analysis payload from the analyzer

        Returns:
            Complete prompt text

        Raises:
            AnalysisValidationError: Unknown analysis type or invalid payload
        """
        try:
            analysis_type = AnalysisType(analysis_type)
        except ValueError as e:
            raise AnalysisValidationError(f"Invalid analysis type: {analysis_type}") from e

        reason = check_payload_structure(raw_payload)
        if reason:
            raise AnalysisValidationError(f"Invalid analysis payload: {reason}")

        template = self.templates[analysis_type]
        return template.replace(PLACEHOLDER, dump_payload(raw_payload))

    def normalize_output(self, analysis_type: AnalysisType, text: str) -> str:
        """
        Check model output against the output contract of its type.

        Prose types are returned unchanged. The visualizations type must
        be a JSON document with the expected arrays; it is returned as
        compact canonical JSON.

        Args:
            analysis_type: Analysis type the output was generated for
            text: Model response text

        Returns:
            Feedback text to persist

        Raises:
            MalformedOutputError: Visualization output is not valid
        """
        if not analysis_type.expects_json:
            return text

        json_str = extract_json(text)
        if not json_str:
            raise MalformedOutputError(
                "Failed to parse visualization output: no JSON object found"
            )

        try:
            document = VisualizationDocument.model_validate_json(json_str)
        except ValidationError as e:
            logger.error(
                f"Visualization output rejected: {e.error_count()} errors, "
                f"preview: {json_str[:200]}"
            )
            raise MalformedOutputError(
                f"Failed to parse visualization output: {e.error_count()} validation errors",
                original_error=e,
            ) from e

        return json.dumps(document.model_dump(), ensure_ascii=False)
