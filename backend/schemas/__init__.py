# backend/schemas/__init__.py
from backend.schemas.request import ChatRequest, DraftCaseRequest, EmbedRequest
from backend.schemas.response import (
    CaseResponse,
    ChatResponse,
    EmbedAllResponse,
    EmbedResponse,
    ErrorResponse,
)

__all__ = [
    "ChatRequest", "DraftCaseRequest", "EmbedRequest",
    "CaseResponse", "ChatResponse", "EmbedAllResponse", "EmbedResponse", "ErrorResponse",
]
