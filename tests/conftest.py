"""
Shared fixtures: fakes for the external collaborators and a FastAPI app
wired to a throwaway SQLite database.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.dependencies import get_embedding_provider, get_llm_client, get_vector_store
from backend.main import create_app
from case_records.database import create_engine, create_session_factory, init_db
from case_records.repository import CaseRepository
from case_records.schemas import ClinicalCaseCreate, RetrievedCaseSnippet
from rag_pipeline.errors import UpstreamError
from rag_pipeline.llm_engine import LanguageModelClient


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeEmbeddingProvider:
    """Returns a fixed vector; raises for texts containing a poisoned word."""

    def __init__(self, vector=None, fail_on: Optional[str] = None):
        self.vector = vector or [0.1, 0.2, 0.3]
        self.fail_on = fail_on
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on and self.fail_on in text:
            raise UpstreamError("embedding provider outage")
        return list(self.vector)


class FakeVectorStore:

    def __init__(self, results: Optional[List[RetrievedCaseSnippet]] = None, fail_search: bool = False):
        self.results = results or []
        self.fail_search = fail_search
        self.fail_upsert = False
        self.indexed: Dict[str, List[float]] = {}
        self.deleted: List[str] = []
        self.search_calls: List[tuple] = []

    async def upsert(self, case, vector):
        if self.fail_upsert:
            raise UpstreamError("index unavailable")
        self.indexed[case.id] = list(vector)

    async def delete(self, case_id):
        self.deleted.append(case_id)
        self.indexed.pop(case_id, None)

    async def count(self):
        return len(self.indexed)

    async def search(self, query_vector, threshold, limit):
        self.search_calls.append((list(query_vector), threshold, limit))
        if self.fail_search:
            raise UpstreamError("similarity search failed")
        return list(self.results)


class FakeCompletions:
    """Stands in for AsyncOpenAI().chat.completions."""

    def __init__(self, answer: Optional[str] = "답변입니다", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.requests: List[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.answer is None:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(role="assistant", content=self.answer)
        return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


def fake_openai(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def snippet(**overrides) -> RetrievedCaseSnippet:
    fields = dict(
        case_number="C-001",
        age_group="40대",
        gender="여",
        chief_complaint="소화불량, 식후 복부팽만",
        tongue_diagnosis="설담 태백",
        pulse_diagnosis="맥완",
        pattern_identification="비위허약",
        prescription="향사육군자탕",
        outcome="호전",
        learning_points="식적 동반 시 산사 가미",
        similarity=0.85,
    )
    fields.update(overrides)
    return RetrievedCaseSnippet(**fields)


def case_payload(**overrides) -> dict:
    payload = dict(
        age_group="40대",
        gender="여",
        chief_complaint="소화불량",
        tongue_diagnosis="설담",
        pulse_diagnosis="맥완",
        pattern_identification="비위허약",
        prescription="향사육군자탕",
        herb_details=[{"name": "인삼", "dose": "4g"}, {"name": "백출", "dose": "6g"}],
        outcome="호전",
        tags=["소화기", "비허"],
    )
    payload.update(overrides)
    return payload


@asynccontextmanager
async def open_repository(database_url: str):
    engine = create_engine(database_url)
    await init_db(engine)
    try:
        async with create_session_factory(engine)() as session:
            yield CaseRepository(session)
    finally:
        await engine.dispose()


async def seed_case(repository: CaseRepository, doctor_id: str = "doc-1", **overrides):
    return await repository.create(doctor_id, ClinicalCaseCreate(**case_payload(**overrides)))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cases.db'}"


@pytest.fixture
def settings(tmp_path, database_url):
    return Settings(
        database_url       = database_url,
        chroma_persist_dir = str(tmp_path / "chroma"),
        openai_api_key     = "test-openai-key",
        llm_api_key        = "test-llm-key",
        llm_model          = "test-model",
    )


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def vector_store():
    return FakeVectorStore()


@pytest.fixture
def completions():
    return FakeCompletions()


@pytest.fixture
def app(settings, embedding_provider, vector_store, completions):
    application = create_app(settings)
    application.dependency_overrides[get_embedding_provider] = lambda: embedding_provider
    application.dependency_overrides[get_vector_store] = lambda: vector_store
    application.dependency_overrides[get_llm_client] = lambda: LanguageModelClient(
        api_key="test-llm-key", model="test-model", client=fake_openai(completions),
    )
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def doctor_headers():
    return {"X-Doctor-Id": "doc-1"}
