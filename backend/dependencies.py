"""
dependencies.py
===============
FastAPI dependency providers.

Process-wide objects (settings, DB session factory, vector store) are built
once in the lifespan handler and kept on app.state.  Provider clients are
cheap and are constructed per request from settings.  Tests swap any of
these through app.dependency_overrides.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import Settings
from case_records.repository import CaseRepository
from rag_pipeline.advisor import CaseAdvisor
from rag_pipeline.embedder import EmbeddingProvider, build_embedding_provider
from rag_pipeline.errors import InputError
from rag_pipeline.llm_engine import AnswerGenerator, LanguageModelClient
from rag_pipeline.retriever import ContextRetriever
from rag_pipeline.vector_store import CaseVectorStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_factory(request: Request):
    return request.app.state.session_factory


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Provide a new AsyncSession for each request."""
    async with request.app.state.session_factory() as session:
        yield session


def get_repository(session: AsyncSession = Depends(get_db)) -> CaseRepository:
    return CaseRepository(session)


def get_vector_store(request: Request) -> CaseVectorStore:
    return request.app.state.vector_store


def get_embedding_provider(settings: Settings = Depends(get_settings)) -> Optional[EmbeddingProvider]:
    return build_embedding_provider(
        backend     = settings.embedding_backend,
        api_key     = settings.openai_api_key,
        model       = settings.embedding_model,
        local_model = settings.local_embed_model,
    )


def get_llm_client(settings: Settings = Depends(get_settings)) -> Optional[LanguageModelClient]:
    if not settings.llm_api_key:
        return None
    return LanguageModelClient(
        api_key  = settings.llm_api_key,
        model    = settings.llm_model,
        base_url = settings.llm_base_url,
    )


def get_advisor(
    settings: Settings = Depends(get_settings),
    provider: Optional[EmbeddingProvider] = Depends(get_embedding_provider),
    vector_store: CaseVectorStore = Depends(get_vector_store),
    llm_client: Optional[LanguageModelClient] = Depends(get_llm_client),
) -> CaseAdvisor:
    retriever = ContextRetriever(
        provider,
        vector_store,
        threshold = settings.match_threshold,
        limit     = settings.match_count,
    )
    return CaseAdvisor(retriever, AnswerGenerator(llm_client, max_tokens=settings.llm_max_tokens))


def get_doctor_id(x_doctor_id: Optional[str] = Header(default=None)) -> str:
    """Author id injected by the authenticating gateway."""
    if not x_doctor_id or not x_doctor_id.strip():
        raise InputError("X-Doctor-Id 헤더가 필요합니다.")
    return x_doctor_id.strip()
