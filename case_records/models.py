from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Base class for all ORM models
class Base(DeclarativeBase):
    pass


class ClinicalCaseRecord(Base):
    """
    ORM model for the 'clinical_cases' table.
    One anonymised patient encounter recorded by a practitioner.
    """
    __tablename__ = "clinical_cases"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid4().hex)
    # Author of the case; only they may edit or delete it
    doctor_id: Mapped[str] = mapped_column(String(64))
    # Sequence backing the human-readable case number (C-001, C-002, ...)
    case_seq: Mapped[int] = mapped_column(Integer, unique=True)
    case_number: Mapped[str] = mapped_column(String(16), unique=True)

    age_group: Mapped[str] = mapped_column(String(16))
    gender: Mapped[str] = mapped_column(String(4))

    chief_complaint: Mapped[str] = mapped_column(Text)
    tongue_diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pulse_diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pattern_identification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    prescription: Mapped[str] = mapped_column(Text)
    # [{"name": ..., "dose": ...}, ...]
    herb_details: Mapped[Optional[list]] = mapped_column(JSON(none_as_null=True), nullable=True)
    treatment_duration: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    outcome: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    outcome_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    clinical_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    learning_points: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON(none_as_null=True), nullable=True)

    # Null until the embedding sync has run for this case
    embedding: Mapped[Optional[List[float]]] = mapped_column(JSON(none_as_null=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_cases_doctor", "doctor_id"),
        Index("ix_cases_created", "created_at"),
    )
