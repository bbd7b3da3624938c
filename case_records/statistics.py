"""
statistics.py
=============
Aggregations behind the statistics dashboard, computed over the full case
list: outcome distribution, improvement rate, demographics, most frequent
prescriptions / patterns / tags, and cases per month.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, List, Sequence, Tuple

from pydantic import BaseModel, Field

from case_records.schemas import ClinicalCase, Gender, Outcome

TOP_PRESCRIPTIONS = 10
TOP_PATTERNS      = 10
TOP_TAGS          = 15


class CountEntry(BaseModel):
    label: str
    count: int


class CaseStatistics(BaseModel):
    total: int
    improvement_rate: int = Field(..., description="(완치 + 호전) / total, in percent")
    outcome_counts: Dict[str, int]
    gender_counts: Dict[str, int]
    age_group_counts: List[CountEntry]
    top_prescriptions: List[CountEntry]
    top_patterns: List[CountEntry]
    top_tags: List[CountEntry]
    monthly_counts: List[CountEntry]


def _value(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


def _ranked(counter: Counter, top: int) -> List[CountEntry]:
    # Counter.most_common keeps first-seen order among equal counts
    return [CountEntry(label=k, count=v) for k, v in counter.most_common(top)]


def _age_key(label: str) -> int:
    match = re.match(r"\d+", label)
    return int(match.group()) if match else 0


def filter_cases(cases: Sequence[ClinicalCase], query: str) -> List[ClinicalCase]:
    """Case-insensitive substring search used by the dashboard search box."""
    q = query.strip().lower()
    if not q:
        return list(cases)

    def hit(case: ClinicalCase) -> bool:
        fields = (
            case.chief_complaint,
            case.prescription,
            case.pattern_identification,
            case.case_number,
        )
        if any(f and q in f.lower() for f in fields):
            return True
        return any(q in t.lower() for t in case.tags or [])

    return [c for c in cases if hit(c)]


def outcome_counts(cases: Iterable[ClinicalCase]) -> Dict[str, int]:
    counts = {o.value: 0 for o in Outcome}
    for case in cases:
        if case.outcome is not None:
            counts[_value(case.outcome)] += 1
    return counts


def improvement_rate(outcomes: Dict[str, int], total: int) -> int:
    if total == 0:
        return 0
    improved = outcomes[Outcome.RESOLVED.value] + outcomes[Outcome.IMPROVED.value]
    return round(improved / total * 100)


def gender_counts(cases: Iterable[ClinicalCase]) -> Dict[str, int]:
    counts = {g.value: 0 for g in Gender}
    for case in cases:
        counts[_value(case.gender)] += 1
    return counts


def age_group_counts(cases: Iterable[ClinicalCase]) -> List[CountEntry]:
    counter = Counter(_value(c.age_group) for c in cases if c.age_group)
    ordered: List[Tuple[str, int]] = sorted(counter.items(), key=lambda kv: _age_key(kv[0]))
    return [CountEntry(label=k, count=v) for k, v in ordered]


def monthly_counts(cases: Iterable[ClinicalCase]) -> List[CountEntry]:
    counter = Counter(c.created_at.strftime("%Y-%m") for c in cases)
    return [CountEntry(label=k, count=v) for k, v in sorted(counter.items())]


def compute_statistics(cases: Sequence[ClinicalCase]) -> CaseStatistics:
    total = len(cases)
    outcomes = outcome_counts(cases)

    prescriptions = Counter(c.prescription.strip() for c in cases if c.prescription)
    patterns = Counter(
        c.pattern_identification.strip() for c in cases if c.pattern_identification
    )
    tags = Counter(t for c in cases for t in c.tags or [])

    return CaseStatistics(
        total             = total,
        improvement_rate  = improvement_rate(outcomes, total),
        outcome_counts    = outcomes,
        gender_counts     = gender_counts(cases),
        age_group_counts  = age_group_counts(cases),
        top_prescriptions = _ranked(prescriptions, TOP_PRESCRIPTIONS),
        top_patterns      = _ranked(patterns, TOP_PATTERNS),
        top_tags          = _ranked(tags, TOP_TAGS),
        monthly_counts    = monthly_counts(cases),
    )
