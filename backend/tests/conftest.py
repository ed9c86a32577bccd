import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from speaking_coach.config import Settings
from speaking_coach.database import create_schema, create_session_maker
from speaking_coach.services.analysis_store import AnalysisStore
from speaking_coach.services.prompt_registry import PromptTemplateRegistry


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        external_ai_enabled=True,
        external_ai_api_url="http://analyzer.test/analyze/",
        video_root=tmp_path / "videos",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
    )


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'analysis.db'}")
    await create_schema(engine)
    yield create_session_maker(engine)
    await engine.dispose()


@pytest.fixture
def store(session_maker):
    return AnalysisStore(session_maker)


@pytest.fixture
def registry(settings):
    return PromptTemplateRegistry.from_settings(settings)
