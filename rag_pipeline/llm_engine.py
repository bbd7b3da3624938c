"""
llm_engine.py
=============
Answer generation through an OpenAI-compatible chat completions endpoint.

The system instruction fixes the advisor's role and embeds the retrieved
case context verbatim (or a fixed placeholder when retrieval found nothing).
The user's question is sent unchanged as a single-turn message.  No retry,
no streaming; generation length is capped by max_tokens.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import openai  # type: ignore

from rag_pipeline.errors import ConfigurationError, MalformedResponseError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000


# ---------------------------------------------------------------------------
# System prompt template
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """당신은 한의학 임상 연구를 돕는 AI 조언자입니다.
사용자는 한의사로, 자신의 임상 사례를 익명화하여 연구 목적으로 기록하고 있습니다.

귀하의 역할:
1. 과거 임상 사례를 분석하여 패턴 발견
2. 처방의 적합성 검토
3. 유사 사례 기반 조언
4. 임상적 통찰 제공

학술적, 객관적으로 답변해주세요. 한자(漢字)를 적절히 활용하세요.
{context_section}"""

CONTEXT_HEADER   = "\n=== 참고할 과거 임상 사례 ===\n"
NO_CASES_MESSAGE = "\n(아직 등록된 과거 사례가 없습니다.)"


def build_system_instruction(context_block: str) -> str:
    section = CONTEXT_HEADER + context_block if context_block else NO_CASES_MESSAGE
    return _SYSTEM_PROMPT.format(context_section=section)


# ---------------------------------------------------------------------------
# Provider client
# ---------------------------------------------------------------------------

def _extract_answer(completion: Any) -> str:
    choices = getattr(completion, "choices", None)
    if not choices:
        raise MalformedResponseError("Language model response contained no choices.")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        raise MalformedResponseError("Language model response contained no text.")
    return content


class LanguageModelClient:
    """Single-turn completion against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        if client is None:
            client = openai.AsyncOpenAI(
                api_key  = api_key,
                base_url = base_url,
                timeout  = 120.0,
            )
        self._client = client
        self.model = model

    async def complete(self, system_instruction: str, user_message: str, max_tokens: int) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=max_tokens,
            )
        except openai.APIStatusError as exc:
            logger.error("LLM call rejected (%s): %s", exc.status_code, exc)
            raise UpstreamError(_status_message(exc), status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            logger.error("LLM call failed: %s", exc)
            raise UpstreamError("AI 호출에 실패했습니다.") from exc

        return _extract_answer(completion)


def _status_message(exc: Any) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return getattr(exc, "message", None) or str(exc)


# ---------------------------------------------------------------------------
# Answer generator
# ---------------------------------------------------------------------------

class AnswerGenerator:

    def __init__(self, client: Optional[LanguageModelClient], max_tokens: int = DEFAULT_MAX_TOKENS):
        self._client = client
        self.max_tokens = max_tokens

    def ensure_configured(self) -> None:
        if self._client is None:
            raise ConfigurationError("AI API 키가 설정되지 않았습니다.")

    async def generate(self, question: str, context_block: str) -> str:
        """Answer *question* grounded in *context_block*."""
        self.ensure_configured()

        system_instruction = build_system_instruction(context_block)
        return await self._client.complete(system_instruction, question, self.max_tokens)
