"""
api/embed.py
============
POST /api/embed      — (re)compute the embedding of one case
POST /api/embed-all  — embed every case that has none yet
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from backend.dependencies import get_embedding_provider, get_repository, get_vector_store
from backend.schemas import EmbedAllResponse, EmbedRequest, EmbedResponse, ErrorResponse
from case_records.repository import CaseRepository
from rag_pipeline.embedder import EmbeddingProvider
from rag_pipeline.embedding_sync import EmbeddingSyncService
from rag_pipeline.errors import InputError
from rag_pipeline.vector_store import CaseVectorStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/embed",
    response_model=EmbedResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def embed_case(
    body: EmbedRequest,
    repository: CaseRepository = Depends(get_repository),
    provider: Optional[EmbeddingProvider] = Depends(get_embedding_provider),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    if not body.case_id:
        raise InputError("case_id가 필요합니다.")

    service = EmbeddingSyncService(repository, provider, vector_store)
    await service.embed_one(body.case_id)
    return EmbedResponse(success=True)


@router.post(
    "/api/embed-all",
    response_model=EmbedAllResponse,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponse}},
)
async def embed_all(
    repository: CaseRepository = Depends(get_repository),
    provider: Optional[EmbeddingProvider] = Depends(get_embedding_provider),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    service = EmbeddingSyncService(repository, provider, vector_store)
    summary = await service.embed_all_pending()
    return EmbedAllResponse(
        total   = summary.total,
        updated = summary.updated,
        errors  = summary.errors or None,
    )
