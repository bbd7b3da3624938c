"""
api/cases.py
============
CRUD over clinical cases plus the two case-scoped advisor calls.

  GET    /api/cases               list (newest first, optional ?q= search)
  POST   /api/cases               create, then embed in the background
  GET    /api/cases/{id}
  PUT    /api/cases/{id}          author only, then re-embed in the background
  DELETE /api/cases/{id}          author only, also drops the index entry
  POST   /api/cases/{id}/chat     question about a saved case
  POST   /api/cases/advice        advice on a draft case

Saving never waits on the embedding: it is scheduled as a background task
whose failure leaves the case without a fresh embedding but does not touch
the response.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status

from backend.dependencies import (
    get_advisor,
    get_doctor_id,
    get_embedding_provider,
    get_repository,
    get_session_factory,
    get_vector_store,
)
from backend.schemas import CaseResponse, ChatRequest, ChatResponse, DraftCaseRequest, ErrorResponse
from case_records.repository import CaseRepository
from case_records.schemas import ClinicalCaseCreate, ClinicalCaseUpdate
from rag_pipeline.advisor import CaseAdvisor, compose_case_question, compose_draft_advice_question
from rag_pipeline.embedder import EmbeddingProvider
from rag_pipeline.embedding_sync import run_background_embedding
from rag_pipeline.errors import InputError, UpstreamError
from rag_pipeline.vector_store import CaseVectorStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cases", tags=["cases"])

_NOT_FOUND = {404: {"model": ErrorResponse}}
_OWNER_ONLY = {400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


@router.get("", response_model=List[CaseResponse])
async def list_cases(
    q: Optional[str] = Query(default=None, description="Search complaint, prescription, pattern, number, tags"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    repository: CaseRepository = Depends(get_repository),
):
    cases = await repository.list_cases(query=q, limit=limit)
    return [CaseResponse.from_case(c) for c in cases]


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED, responses={400: {"model": ErrorResponse}})
async def create_case(
    body: ClinicalCaseCreate,
    background_tasks: BackgroundTasks,
    doctor_id: str = Depends(get_doctor_id),
    repository: CaseRepository = Depends(get_repository),
    session_factory=Depends(get_session_factory),
    provider: Optional[EmbeddingProvider] = Depends(get_embedding_provider),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    case = await repository.create(doctor_id, body)
    background_tasks.add_task(run_background_embedding, session_factory, provider, vector_store, case.id)
    return CaseResponse.from_case(case)


@router.post("/advice", response_model=ChatResponse, responses={400: {"model": ErrorResponse}})
async def advise_on_draft(body: DraftCaseRequest, advisor: CaseAdvisor = Depends(get_advisor)):
    if not body.chief_complaint or not body.chief_complaint.strip():
        raise InputError("주소증을 먼저 입력해주세요.")
    answer = await advisor.answer_question(compose_draft_advice_question(body))
    return ChatResponse(answer=answer)


@router.get("/{case_id}", response_model=CaseResponse, responses=_NOT_FOUND)
async def get_case(case_id: str, repository: CaseRepository = Depends(get_repository)):
    return CaseResponse.from_case(await repository.get_by_id(case_id))


@router.put("/{case_id}", response_model=CaseResponse, responses=_OWNER_ONLY)
async def update_case(
    case_id: str,
    body: ClinicalCaseUpdate,
    background_tasks: BackgroundTasks,
    doctor_id: str = Depends(get_doctor_id),
    repository: CaseRepository = Depends(get_repository),
    session_factory=Depends(get_session_factory),
    provider: Optional[EmbeddingProvider] = Depends(get_embedding_provider),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    case = await repository.update(case_id, doctor_id, body)
    background_tasks.add_task(run_background_embedding, session_factory, provider, vector_store, case.id)
    return CaseResponse.from_case(case)


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_OWNER_ONLY)
async def delete_case(
    case_id: str,
    doctor_id: str = Depends(get_doctor_id),
    repository: CaseRepository = Depends(get_repository),
    vector_store: CaseVectorStore = Depends(get_vector_store),
):
    await repository.delete(case_id, doctor_id)
    try:
        await vector_store.delete(case_id)
    except UpstreamError as exc:
        logger.warning("Index entry for deleted case %s not removed: %s", case_id, exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{case_id}/chat", response_model=ChatResponse, responses={**_NOT_FOUND, 400: {"model": ErrorResponse}})
async def chat_about_case(
    case_id: str,
    body: ChatRequest,
    repository: CaseRepository = Depends(get_repository),
    advisor: CaseAdvisor = Depends(get_advisor),
):
    if not body.question or not body.question.strip():
        raise InputError("질문을 입력해주세요.")
    case = await repository.get_by_id(case_id)
    answer = await advisor.answer_question(compose_case_question(case, body.question))
    return ChatResponse(answer=answer)
