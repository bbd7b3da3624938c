"""
case_text.py
============
Render a clinical case into the single text blob that gets embedded.

Accepts a pydantic case, an ORM row or a plain dict.  Partial records are
fine: optional fields that are missing or blank are left out entirely, while
the chief complaint and prescription lines are always emitted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Mapping, Optional

HERB_SEPARATOR = ", "

# (field, label, always_present)
_FIELD_LABELS = (
    ("chief_complaint",        "주소증",  True),
    ("tongue_diagnosis",       "설진",    False),
    ("pulse_diagnosis",        "맥진",    False),
    ("pattern_identification", "변증",    False),
    ("prescription",           "처방",    True),
    ("herb_details",           "약재",    False),
    ("outcome",                "결과",    False),
    ("outcome_notes",          "경과",    False),
    ("clinical_notes",         "소견",    False),
    ("learning_points",        "배운점",  False),
)


def field_value(case: Any, name: str) -> Any:
    """Read *name* from a mapping or an attribute-style record."""
    if isinstance(case, Mapping):
        return case.get(name)
    return getattr(case, name, None)


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value).strip()


def render_herbs(herbs: Optional[List[Any]]) -> str:
    """Render herb details as ``"name dose"`` pairs joined by a comma."""
    if not herbs:
        return ""
    parts = []
    for herb in herbs:
        name = as_text(field_value(herb, "name"))
        if not name:
            continue
        dose = as_text(field_value(herb, "dose"))
        parts.append(f"{name} {dose}".strip())
    return HERB_SEPARATOR.join(parts)


def normalize_case(case: Any) -> str:
    lines: List[str] = []
    for name, label, always in _FIELD_LABELS:
        raw = field_value(case, name)
        value = render_herbs(raw) if name == "herb_details" else as_text(raw)
        if value or always:
            lines.append(f"{label}: {value}")
    return "\n".join(lines)
