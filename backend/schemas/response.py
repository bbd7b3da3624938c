"""
schemas/response.py
===================
Pydantic v2 response models for the HTTP surface.

Case responses never carry the embedding vector itself, only whether one
has been computed.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from case_records.schemas import ClinicalCase, ClinicalCaseBase


class ChatResponse(BaseModel):
    answer: str


class EmbedResponse(BaseModel):
    success: bool = True


class EmbedAllResponse(BaseModel):
    total: int
    updated: int
    errors: Optional[List[str]] = None


class CaseResponse(ClinicalCaseBase):
    id: str
    doctor_id: str
    case_number: str
    has_embedding: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_case(cls, case: ClinicalCase) -> "CaseResponse":
        return cls(
            **case.model_dump(exclude={"embedding"}),
            has_embedding=case.has_embedding,
        )


class ErrorResponse(BaseModel):
    error: str
