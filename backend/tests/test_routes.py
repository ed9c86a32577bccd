import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from speaking_coach.api.routes import get_orchestrator_factory
from speaking_coach.config import ConfigurationError
from speaking_coach.main import app
from speaking_coach.services.ai_clients.base import AIClientTimeoutError
from speaking_coach.services.pipeline import AnalysisOrchestrator

from fakes import FakeAnalyzer, FakeModel, FakeVideoSource


@pytest.fixture
def model():
    return FakeModel()


@pytest.fixture
def orchestrator(store, registry, model):
    return AnalysisOrchestrator(
        store=store,
        model=model,
        registry=registry,
        video_source=FakeVideoSource(),
        analyzer=FakeAnalyzer(),
    )


@pytest_asyncio.fixture
async def client(orchestrator):
    app.dependency_overrides[get_orchestrator_factory] = lambda: (lambda: orchestrator)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def _body(**overrides) -> dict:
    body = {"owner_id": "user-1", "video_ref": "talks/demo.mp4", "analysis_type": "action_fixes"}
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_analyze_returns_feedback_then_cached(client, model):
    response = await client.post("/api/analyze", json=_body())

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["feedback"] == "SECTION A — feedback from payload"
    assert data["analysis_type"] == "action_fixes"
    assert data["analysis_source"] == "hybrid"
    assert data["cached"] is False
    assert "error" not in data

    second = await client.post("/api/analyze", json=_body())

    assert second.status_code == 200
    assert second.json()["cached"] is True
    assert second.json()["record_id"] == data["record_id"]
    assert model.call_count == 1


@pytest.mark.asyncio
async def test_unknown_analysis_type_is_rejected(client, model):
    response = await client.post("/api/analyze", json=_body(analysis_type="detailed_review"))

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid request. Please check your input and try again.",
        "code": "validation",
    }
    assert model.call_count == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{}, _body(owner_id=""), _body(video_ref="   ")])
async def test_missing_fields_are_rejected(client, body):
    response = await client.post("/api/analyze", json=body)

    assert response.status_code == 400
    assert response.json()["code"] == "validation"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        _body(analysis_type=5),
        _body(owner_id={"id": "user-1"}),
        [_body()],
    ],
)
async def test_malformed_body_gets_validation_response(client, model, body):
    response = await client.post("/api/analyze", json=body)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Invalid request. Please check your input and try again.",
        "code": "validation",
    }
    assert model.call_count == 0


@pytest.mark.asyncio
async def test_non_json_body_gets_validation_response(client):
    response = await client.post(
        "/api/analyze",
        content=b"owner_id=user-1",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation"


@pytest.mark.asyncio
async def test_configuration_error_is_classified():
    def build():
        raise ConfigurationError("Missing required configuration: GEMINI_API_KEY")

    app.dependency_overrides[get_orchestrator_factory] = lambda: build
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.post("/api/analyze", json=_body())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Service is temporarily unavailable. Please try again later.",
        "code": "configuration",
    }


@pytest.mark.asyncio
async def test_model_timeout_maps_to_504(client, model):
    model.error = AIClientTimeoutError("Generation timed out after 300s")

    response = await client.post("/api/analyze", json=_body())

    assert response.status_code == 504
    assert response.json()["code"] == "timeout"
    assert "300s" not in response.json()["error"]


@pytest.mark.asyncio
async def test_list_analysis_types(client):
    response = await client.get("/api/analysis-types")

    assert response.status_code == 200
    types = response.json()
    assert [t["id"] for t in types] == [
        "executive_summary",
        "strengths_failures",
        "timewise_analysis",
        "action_fixes",
        "visualizations",
    ]
    assert [t["json_output"] for t in types] == [False, False, False, False, True]
    assert all(t["label"] for t in types)


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
