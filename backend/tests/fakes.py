"""In-memory stand-ins for external services used by the tests."""

SAMPLE_PAYLOAD = {
    "speech": {"words_per_minute": 142, "filler_rate": 0.02},
    "windows": [
        {"start": 0, "end": 5, "transcript": "Good evening everyone", "audio_energy": 0.4},
        {"start": 5, "end": 10, "transcript": "Today I want to talk", "audio_energy": 0.5},
    ],
}

VISUALIZATION_JSON = """{
  "mismatchTimeline": [{"time": "00:00", "timeSeconds": 0, "expected": 0.7, "actual": 0.4,
                        "gap": 0.3, "status": "weak_gap", "transcript": "Good evening"}],
  "energyFusion": [{"time": "00:00", "timeSeconds": 0, "audioEnergy": 0.5, "bodyEnergy": 0.3,
                    "faceEnergy": 0.4, "handEnergy": 0.2}],
  "opportunityMap": [{"time": "00:00", "expected": 0.7, "actual": 0.4, "gap": 0.3,
                      "status": "weak_gap", "quadrant": "Missed Opportunities",
                      "transcript": "Good evening"}],
  "interpretation": "Delivery stays below the weight of the content."
}"""


class FakeAnalyzer:
    """Records calls and returns a fixed payload or raises a fixed error."""

    def __init__(self, payload: dict | None = None, error: Exception | None = None):
        self.payload = payload if payload is not None else SAMPLE_PAYLOAD
        self.error = error
        self.calls: list[tuple[bytes, str]] = []
        self.closed = False

    async def analyze_video(self, video_bytes: bytes, mime_type: str) -> dict:
        self.calls.append((video_bytes, mime_type))
        if self.error:
            raise self.error
        return self.payload

    async def health_check(self) -> bool:
        return self.error is None

    async def close(self) -> None:
        self.closed = True


class FakeModel:
    """Records prompts and direct video calls."""

    def __init__(
        self,
        response: str = "SECTION A — feedback from payload",
        direct_response: str = "Strengths: clear voice",
        error: Exception | None = None,
    ):
        self.response = response
        self.direct_response = direct_response
        self.error = error
        self.prompts: list[str] = []
        self.json_flags: list[bool] = []
        self.direct_calls: list[tuple[bytes, str, str | None]] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.prompts) + len(self.direct_calls)

    async def process(self, prompt: str, json_response: bool = False) -> str:
        self.prompts.append(prompt)
        self.json_flags.append(json_response)
        if self.error:
            raise self.error
        return self.response

    async def process_video_direct(
        self,
        video_bytes: bytes,
        mime_type: str,
        display_name: str | None = None,
    ) -> str:
        self.direct_calls.append((video_bytes, mime_type, display_name))
        if self.error:
            raise self.error
        return self.direct_response

    async def close(self) -> None:
        self.closed = True


class FakeVideoSource:
    """Serves the same bytes for every reference."""

    def __init__(self, data: bytes = b"fake-video-binary"):
        self.data = data
        self.reads: list[str] = []

    async def read(self, video_ref: str) -> bytes:
        self.reads.append(video_ref)
        return self.data
