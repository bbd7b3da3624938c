from datetime import datetime

from case_records.schemas import ClinicalCase
from case_records.statistics import compute_statistics, filter_cases

from conftest import case_payload


def _case(n, created, **overrides):
    return ClinicalCase(
        id=f"id-{n}",
        doctor_id="doc-1",
        case_number=f"C-{n:03d}",
        created_at=created,
        updated_at=created,
        **case_payload(**overrides),
    )


CASES = [
    _case(1, datetime(2025, 1, 5), outcome="완치", gender="남", age_group="60대", tags=["소화기"]),
    _case(2, datetime(2025, 1, 20), outcome="호전", gender="여", age_group="20대", tags=["소화기", "불면"]),
    _case(3, datetime(2025, 2, 2), outcome="악화", gender="여", age_group="70대 이상",
          prescription="귀비탕", pattern_identification="심비양허", tags=["불면"]),
    _case(4, datetime(2025, 3, 9), outcome=None, gender="여", age_group="20대", tags=None),
]


def test_outcome_counts_and_improvement_rate():
    stats = compute_statistics(CASES)

    assert stats.total == 4
    assert stats.outcome_counts == {"완치": 1, "호전": 1, "변화없음": 0, "악화": 1, "추적불가": 0}
    assert stats.improvement_rate == 50


def test_demographics():
    stats = compute_statistics(CASES)

    assert stats.gender_counts == {"남": 1, "여": 3}
    assert [(e.label, e.count) for e in stats.age_group_counts] == [("20대", 2), ("60대", 1), ("70대 이상", 1)]


def test_rankings_and_months():
    stats = compute_statistics(CASES)

    assert [(e.label, e.count) for e in stats.top_prescriptions] == [("향사육군자탕", 3), ("귀비탕", 1)]
    assert stats.top_patterns[0].label == "비위허약"
    assert {(e.label, e.count) for e in stats.top_tags} == {("소화기", 2), ("불면", 2)}
    assert [(e.label, e.count) for e in stats.monthly_counts] == [("2025-01", 2), ("2025-02", 1), ("2025-03", 1)]


def test_empty_case_list():
    stats = compute_statistics([])
    assert stats.total == 0
    assert stats.improvement_rate == 0
    assert stats.top_tags == []


def test_filter_is_case_insensitive_and_covers_tags():
    assert [c.case_number for c in filter_cases(CASES, "귀비")] == ["C-003"]
    assert [c.case_number for c in filter_cases(CASES, "불면")] == ["C-002", "C-003"]
    assert len(filter_cases(CASES, "  ")) == 4
