"""
advisor.py
==========
Entry point for the AI advisor: retrieve similar cases, then ask the
language model.  Retrieval never fails; generation errors propagate to the
caller untouched.

Also builds the two question shapes the case screens send: a question about
a saved case, and a request for advice on a draft case.
"""

from __future__ import annotations

import logging
from typing import Any

from rag_pipeline.case_text import as_text, field_value
from rag_pipeline.errors import InputError
from rag_pipeline.llm_engine import AnswerGenerator
from rag_pipeline.retriever import ContextRetriever

logger = logging.getLogger(__name__)

_NOT_ENTERED = "미입력"


def _or_blank(case: Any, name: str) -> str:
    return as_text(field_value(case, name)) or _NOT_ENTERED


def compose_case_question(case: Any, question: str) -> str:
    """Prefix *question* with a summary of the case being viewed."""
    context = "\n".join([
        "현재 사례 정보:",
        f"- 연령/성별: {as_text(field_value(case, 'age_group'))} {as_text(field_value(case, 'gender'))}",
        f"- 주소증: {as_text(field_value(case, 'chief_complaint'))}",
        f"- 설진: {_or_blank(case, 'tongue_diagnosis')}",
        f"- 맥진: {_or_blank(case, 'pulse_diagnosis')}",
        f"- 변증: {_or_blank(case, 'pattern_identification')}",
        f"- 처방: {as_text(field_value(case, 'prescription'))}",
        f"- 결과: {_or_blank(case, 'outcome')}",
        f"- 경과: {_or_blank(case, 'outcome_notes')}",
    ])
    return f"{context}\n\n질문: {question}"


def compose_draft_advice_question(draft: Any) -> str:
    """Ask for a review of a case that is still being written."""
    return "\n".join([
        "다음 임상 사례에 대해 분석하고 조언해주세요:",
        f"- 연령/성별: {as_text(field_value(draft, 'age_group'))} {as_text(field_value(draft, 'gender'))}",
        f"- 주소증: {as_text(field_value(draft, 'chief_complaint'))}",
        f"- 설진: {_or_blank(draft, 'tongue_diagnosis')}",
        f"- 맥진: {_or_blank(draft, 'pulse_diagnosis')}",
        f"- 변증: {_or_blank(draft, 'pattern_identification')}",
        f"- 현재 처방: {_or_blank(draft, 'prescription')}",
        "",
        "처방 적합성, 대체 처방 제안, 주의사항을 알려주세요.",
    ])


class CaseAdvisor:

    def __init__(self, retriever: ContextRetriever, generator: AnswerGenerator):
        self._retriever = retriever
        self._generator = generator

    async def answer_question(self, question: str) -> str:
        if not question or not question.strip():
            raise InputError("질문을 입력해주세요.")
        self._generator.ensure_configured()

        context_block = await self._retriever.retrieve(question)
        logger.info("Answering question with %s context.", "case" if context_block else "no")
        return await self._generator.generate(question, context_block)
