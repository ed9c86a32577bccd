import pytest

from speaking_coach.services.video_source import LocalVideoSource, VideoSourceError


@pytest.fixture
def video_root(tmp_path):
    root = tmp_path / "videos"
    (root / "user-1").mkdir(parents=True)
    (root / "user-1" / "talk.mp4").write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return root


@pytest.mark.asyncio
async def test_read_returns_bytes(video_root):
    source = LocalVideoSource(video_root)

    assert await source.read("user-1/talk.mp4") == b"\x00\x00\x00\x18ftypmp42"


@pytest.mark.asyncio
async def test_leading_slash_stays_below_root(video_root):
    source = LocalVideoSource(video_root)

    assert await source.read("/user-1/talk.mp4") == b"\x00\x00\x00\x18ftypmp42"


@pytest.mark.asyncio
async def test_missing_file(video_root):
    source = LocalVideoSource(video_root)

    with pytest.raises(VideoSourceError, match="file not found"):
        await source.read("user-1/missing.mp4")


@pytest.mark.asyncio
async def test_reference_outside_root_is_rejected(video_root):
    (video_root.parent / "secret.txt").write_text("secret")
    source = LocalVideoSource(video_root)

    with pytest.raises(VideoSourceError, match="escapes video root"):
        await source.read("../secret.txt")
