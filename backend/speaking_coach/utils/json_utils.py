"""
JSON helpers for provider payloads and model responses.

Models often return JSON wrapped in markdown code blocks even when asked
for raw JSON. Provider payloads are open-shaped documents that only need
to pass a minimal structural check before they are used.

Example:
    from speaking_coach.utils.json_utils import extract_json, check_payload_structure

    response = '```json\\n{"interpretation": "ok"}\\n```'
    json_str = extract_json(response)

    reason = check_payload_structure({"speech": {"wpm": 140}})
    assert reason is None
"""

import json
import re
from collections.abc import Mapping
from typing import Any


def extract_json(text: str) -> str:
    """
    Extract a JSON object from a model response.

    Handles responses wrapped in markdown code blocks and finds the
    outermost object even if surrounded by other text.

    Args:
        text: Raw model response

    Returns:
        Clean JSON string (empty string if not found)

    Example:
        >>> extract_json('```json\\n{"key": "value"}\\n```')
        '{"key": "value"}'
    """
    if not text:
        return ""

    cleaned = text.strip()

    # Try to extract from markdown code block first
    code_block_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", cleaned)
    if code_block_match:
        cleaned = code_block_match.group(1).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        return ""

    return cleaned[start : end + 1]


def check_payload_structure(payload: Any) -> str | None:
    """
    Check the minimal structural contract of a raw analysis payload.

    A valid payload is a non-empty mapping that can be serialized to JSON.

    Args:
        payload: Decoded provider response

    Returns:
        None if the payload is valid, otherwise a short reason
    """
    if payload is None:
        return "payload is null"
    if isinstance(payload, list):
        return "payload is an array, expected an object"
    if not isinstance(payload, Mapping):
        return f"payload is {type(payload).__name__}, expected an object"
    if not payload:
        return "payload is empty"

    try:
        json.dumps(payload, default=_mapping_default)
    except (TypeError, ValueError) as e:
        return f"payload is not serializable: {e}"

    return None


def dump_payload(payload: Mapping) -> str:
    """Serialize a payload for prompt injection (pretty-printed)."""
    return json.dumps(payload, indent=2, ensure_ascii=False, default=_mapping_default)


def _mapping_default(value: Any) -> dict:
    # json only encodes dict natively
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
