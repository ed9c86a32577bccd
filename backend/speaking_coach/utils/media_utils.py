"""
Media utilities for video references.

Provides media type detection from a video reference's extension.
"""

from pathlib import PurePosixPath

DEFAULT_VIDEO_MIME_TYPE = "video/mp4"

# Supported video extensions and their media types
VIDEO_MIME_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/x-m4v",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
    ".avi": "video/x-msvideo",
    ".mkv": "video/x-matroska",
}


def guess_video_mime_type(video_ref: str, default: str = DEFAULT_VIDEO_MIME_TYPE) -> str:
    """Infer the media type of a video from its reference.

    Args:
        video_ref: Storage path or object key of the video
        default: Media type used for unknown extensions

    Returns:
        Media type string (e.g. "video/mp4")
    """
    suffix = PurePosixPath(video_ref).suffix.lower()
    return VIDEO_MIME_TYPES.get(suffix, default)
