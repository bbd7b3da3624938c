"""
repository.py
=============
CRUD access to clinical case records over an async SQLAlchemy session.

Every row leaving the repository is validated into a ClinicalCase, and every
SQLAlchemy failure is re-raised as UpstreamError so callers only deal with the
service's own error taxonomy.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from case_records.models import ClinicalCaseRecord
from case_records.schemas import ClinicalCase, ClinicalCaseCreate, ClinicalCaseUpdate
from case_records.statistics import filter_cases
from rag_pipeline.errors import NotFoundError, PermissionDeniedError, UpstreamError

logger = logging.getLogger(__name__)


def format_case_number(seq: int) -> str:
    return f"C-{seq:03d}"


class CaseRepository:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _load(self, case_id: str) -> ClinicalCaseRecord:
        try:
            row = await self._session.get(ClinicalCaseRecord, case_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Case lookup failed: {exc}") from exc
        if row is None:
            raise NotFoundError("케이스를 찾을 수 없습니다.")
        return row

    async def _commit(self, action: str) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UpstreamError(f"Case {action} failed: {exc}") from exc

    # ── reads ─────────────────────────────────────────────────────────────

    async def get_by_id(self, case_id: str) -> ClinicalCase:
        return ClinicalCase.model_validate(await self._load(case_id))

    async def list_cases(self, query: Optional[str] = None, limit: Optional[int] = None) -> List[ClinicalCase]:
        """Newest first; *query* applies the dashboard's free-text filter."""
        stmt = (
            select(ClinicalCaseRecord)
            .order_by(ClinicalCaseRecord.created_at.desc())
            .execution_options(populate_existing=True)
        )
        if limit is not None and not query:
            stmt = stmt.limit(limit)
        try:
            rows = (await self._session.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Case listing failed: {exc}") from exc

        cases = [ClinicalCase.model_validate(row) for row in rows]
        if query:
            cases = filter_cases(cases, query)
            if limit is not None:
                cases = cases[:limit]
        return cases

    async def list_missing_embedding(self) -> List[ClinicalCase]:
        stmt = (
            select(ClinicalCaseRecord)
            .where(ClinicalCaseRecord.embedding.is_(None))
            .order_by(ClinicalCaseRecord.case_seq)
            .execution_options(populate_existing=True)
        )
        try:
            rows = (await self._session.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            raise UpstreamError(f"케이스 조회 실패: {exc}") from exc
        return [ClinicalCase.model_validate(row) for row in rows]

    # ── writes ────────────────────────────────────────────────────────────

    async def create(self, doctor_id: str, data: ClinicalCaseCreate) -> ClinicalCase:
        try:
            last_seq = await self._session.scalar(select(func.max(ClinicalCaseRecord.case_seq)))
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Case numbering failed: {exc}") from exc

        seq = (last_seq or 0) + 1
        row = ClinicalCaseRecord(
            doctor_id   = doctor_id,
            case_seq    = seq,
            case_number = format_case_number(seq),
            **data.model_dump(mode="json"),
        )
        self._session.add(row)
        await self._commit("save")
        await self._session.refresh(row)
        logger.info("Case %s created by %s.", row.case_number, doctor_id)
        return ClinicalCase.model_validate(row)

    async def update(self, case_id: str, doctor_id: str, data: ClinicalCaseUpdate) -> ClinicalCase:
        row = await self._load(case_id)
        if row.doctor_id != doctor_id:
            raise PermissionDeniedError("본인이 작성한 사례만 수정할 수 있습니다.")

        for key, value in data.model_dump(mode="json").items():
            setattr(row, key, value)
        await self._commit("update")
        await self._session.refresh(row)
        return ClinicalCase.model_validate(row)

    async def delete(self, case_id: str, doctor_id: str) -> None:
        row = await self._load(case_id)
        if row.doctor_id != doctor_id:
            raise PermissionDeniedError("본인이 작성한 사례만 삭제할 수 있습니다.")
        await self._session.delete(row)
        await self._commit("delete")
        logger.info("Case %s deleted.", row.case_number)

    async def update_embedding(self, case_id: str, vector: Optional[List[float]]) -> None:
        """Persist *vector* on the case; nothing else on the row changes."""
        stmt = (
            update(ClinicalCaseRecord)
            .where(ClinicalCaseRecord.id == case_id)
            # keep updated_at: an embedding refresh is not an edit
            .values(embedding=vector, updated_at=ClinicalCaseRecord.updated_at)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UpstreamError(f"임베딩 저장 실패: {exc}") from exc
        if result.rowcount == 0:
            await self._session.rollback()
            raise NotFoundError("케이스를 찾을 수 없습니다.")
        await self._commit("embedding save")
