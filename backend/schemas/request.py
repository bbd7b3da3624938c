"""
schemas/request.py
==================
Request bodies.  Required fields are Optional at the model level so that a
missing value reaches the handler and is reported as InputError (400) with
the service's own message instead of a generic validation error.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    question: Optional[str] = None


class EmbedRequest(BaseModel):
    case_id: Optional[str] = None


class DraftCaseRequest(BaseModel):
    """A case still being written; only the chief complaint is needed."""

    age_group: Optional[str] = None
    gender: Optional[str] = None
    chief_complaint: Optional[str] = None
    tongue_diagnosis: Optional[str] = None
    pulse_diagnosis: Optional[str] = None
    pattern_identification: Optional[str] = None
    prescription: Optional[str] = None
