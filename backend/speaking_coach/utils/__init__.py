"""
Shared utilities.

Modules:
    json_utils: JSON extraction from model responses and payload checks
    media_utils: Media type detection for video references
"""

from speaking_coach.utils.json_utils import (
    check_payload_structure,
    dump_payload,
    extract_json,
)
from speaking_coach.utils.media_utils import (
    DEFAULT_VIDEO_MIME_TYPE,
    guess_video_mime_type,
)

__all__ = [
    "check_payload_structure",
    "dump_payload",
    "extract_json",
    "DEFAULT_VIDEO_MIME_TYPE",
    "guess_video_mime_type",
]
