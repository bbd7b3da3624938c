"""
api/chat.py
===========
POST /api/chat — answer a free-text question, grounded in similar past cases
when retrieval finds any.
"""

from fastapi import APIRouter, Depends

from backend.dependencies import get_advisor
from backend.schemas import ChatRequest, ChatResponse, ErrorResponse
from rag_pipeline.advisor import CaseAdvisor

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/api/chat", response_model=ChatResponse, responses=ERROR_RESPONSES)
async def chat(body: ChatRequest, advisor: CaseAdvisor = Depends(get_advisor)):
    answer = await advisor.answer_question(body.question or "")
    return ChatResponse(answer=answer)
