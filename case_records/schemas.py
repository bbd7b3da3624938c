"""
schemas.py
==========
Pydantic v2 models for clinical case records.

These are the validation boundary of the case repository: rows coming out of
the database and payloads coming in over HTTP both pass through them, so the
rest of the code can rely on named, typed fields.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AgeGroup(str, Enum):
    TEENS      = "10대"
    TWENTIES   = "20대"
    THIRTIES   = "30대"
    FORTIES    = "40대"
    FIFTIES    = "50대"
    SIXTIES    = "60대"
    SEVENTIES  = "70대 이상"


class Gender(str, Enum):
    MALE   = "남"
    FEMALE = "여"


class Outcome(str, Enum):
    RESOLVED            = "완치"
    IMPROVED            = "호전"
    UNCHANGED           = "변화없음"
    WORSENED            = "악화"
    LOST_TO_FOLLOW_UP   = "추적불가"


class HerbDetail(BaseModel):
    name: str
    dose: str = ""

    @field_validator("name", "dose", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


_OPTIONAL_TEXT = (
    "tongue_diagnosis",
    "pulse_diagnosis",
    "pattern_identification",
    "treatment_duration",
    "outcome_notes",
    "clinical_notes",
    "learning_points",
)


# ---------------------------------------------------------------------------
# Editable fields
# ---------------------------------------------------------------------------

class ClinicalCaseBase(BaseModel):
    age_group: AgeGroup = AgeGroup.THIRTIES
    gender: Gender = Gender.MALE

    chief_complaint: str = Field(..., min_length=1)
    tongue_diagnosis: Optional[str] = None
    pulse_diagnosis: Optional[str] = None
    pattern_identification: Optional[str] = None

    prescription: str = Field(..., min_length=1)
    herb_details: Optional[List[HerbDetail]] = None
    treatment_duration: Optional[str] = None

    outcome: Optional[Outcome] = None
    outcome_notes: Optional[str] = None

    clinical_notes: Optional[str] = None
    learning_points: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("chief_complaint", "prescription", mode="before")
    @classmethod
    def _strip_required(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("outcome", mode="before")
    @classmethod
    def _blank_outcome(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("herb_details")
    @classmethod
    def _drop_blank_herbs(cls, v: Optional[List[HerbDetail]]) -> Optional[List[HerbDetail]]:
        if not v:
            return None
        herbs = [h for h in v if h.name]
        return herbs or None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            v = v.split(",")
        tags = [str(t).strip() for t in v if str(t).strip()]
        return tags or None


class ClinicalCaseCreate(ClinicalCaseBase):
    pass


class ClinicalCaseUpdate(ClinicalCaseBase):
    # a full replacement; omitted demographics must not fall back to defaults
    age_group: AgeGroup
    gender: Gender


# ---------------------------------------------------------------------------
# Persisted case
# ---------------------------------------------------------------------------

class ClinicalCase(ClinicalCaseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    doctor_id: str
    case_number: str
    embedding: Optional[List[float]] = None
    created_at: datetime
    updated_at: datetime

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class RetrievedCaseSnippet(BaseModel):
    """Read-only projection of a case produced by similarity search."""

    case_number: Optional[str] = None
    age_group: Optional[str] = None
    gender: Optional[str] = None
    chief_complaint: Optional[str] = None
    tongue_diagnosis: Optional[str] = None
    pulse_diagnosis: Optional[str] = None
    pattern_identification: Optional[str] = None
    prescription: Optional[str] = None
    outcome: Optional[str] = None
    learning_points: Optional[str] = None
    similarity: float
