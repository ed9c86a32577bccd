"""
Video byte sources.

The orchestrator only needs the bytes of a video for a given reference;
where they live is up to the storage subsystem. LocalVideoSource reads
them from a directory on disk.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from speaking_coach.config import Settings

logger = logging.getLogger(__name__)


class VideoSourceError(Exception):
    """Raised when video bytes cannot be retrieved from storage."""

    def __init__(self, message: str, video_ref: str):
        self.video_ref = video_ref
        super().__init__(f"Video storage error: {message} ({video_ref})")


@runtime_checkable
class VideoSource(Protocol):
    """Resolves a video reference to its bytes."""

    async def read(self, video_ref: str) -> bytes:
        """
        Read the full video.

        Raises:
            VideoSourceError: If the video is missing or unreadable
        """
        ...


class LocalVideoSource:
    """
    Reads videos from a root directory.

    Video references are relative paths below the root; references that
    resolve outside of it are rejected.

    Example:
        source = LocalVideoSource(Path("/data/videos"))
        data = await source.read("user-1/talk.mp4")
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalVideoSource":
        return cls(settings.video_root)

    def _resolve(self, video_ref: str) -> Path:
        path = (self.root / video_ref.lstrip("/")).resolve()
        if not path.is_relative_to(self.root):
            raise VideoSourceError("reference escapes video root", video_ref)
        return path

    async def read(self, video_ref: str) -> bytes:
        path = self._resolve(video_ref)
        if not path.is_file():
            raise VideoSourceError("file not found", video_ref)

        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise VideoSourceError(f"read failed: {e}", video_ref) from e

        logger.debug(f"Read video {video_ref}: {len(data) / 1024 / 1024:.1f} MB")
        return data
