"""
api/stats.py
============
GET /api/stats — dashboard aggregates over every recorded case.
"""

from fastapi import APIRouter, Depends

from backend.dependencies import get_repository
from case_records.repository import CaseRepository
from case_records.statistics import CaseStatistics, compute_statistics

router = APIRouter()


@router.get("/api/stats", response_model=CaseStatistics)
async def case_statistics(repository: CaseRepository = Depends(get_repository)):
    cases = await repository.list_cases()
    return compute_statistics(cases)
