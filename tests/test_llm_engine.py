import asyncio

import httpx
import openai
import pytest

from rag_pipeline.errors import ConfigurationError, MalformedResponseError, UpstreamError
from rag_pipeline.llm_engine import (
    CONTEXT_HEADER,
    NO_CASES_MESSAGE,
    AnswerGenerator,
    LanguageModelClient,
    build_system_instruction,
)

from conftest import FakeCompletions, fake_openai


def _generator(completions, max_tokens=2000):
    client = LanguageModelClient(api_key="k", model="test-model", client=fake_openai(completions))
    return AnswerGenerator(client, max_tokens=max_tokens)


def _status_error(status, message):
    request = httpx.Request("POST", "https://llm.example/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return openai.APIStatusError(message, response=response, body={"error": {"message": message}})


def test_empty_context_uses_placeholder():
    instruction = build_system_instruction("")
    assert instruction.endswith(NO_CASES_MESSAGE)
    assert CONTEXT_HEADER not in instruction


def test_context_is_embedded_verbatim():
    block = "[C-001] (유사도: 0.85)\n- 처방: 향사육군자탕"
    instruction = build_system_instruction(block)
    assert CONTEXT_HEADER + block in instruction
    assert NO_CASES_MESSAGE not in instruction


def test_generate_sends_system_instruction_and_raw_question():
    completions = FakeCompletions(answer="답변입니다")
    answer = asyncio.run(_generator(completions, max_tokens=123).generate("질문?", ""))

    assert answer == "답변입니다"
    request = completions.requests[0]
    assert request["max_tokens"] == 123
    assert request["model"] == "test-model"
    assert request["messages"][0]["role"] == "system"
    assert NO_CASES_MESSAGE in request["messages"][0]["content"]
    assert request["messages"][1] == {"role": "user", "content": "질문?"}


def test_missing_client_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        asyncio.run(AnswerGenerator(None).generate("질문", ""))


def test_error_payload_carries_upstream_status():
    completions = FakeCompletions(error=_status_error(429, "rate limited"))
    with pytest.raises(UpstreamError) as info:
        asyncio.run(_generator(completions).generate("질문", ""))
    assert info.value.status_code == 429
    assert info.value.message == "rate limited"


def test_connection_failure_maps_to_500():
    request = httpx.Request("POST", "https://llm.example/v1/chat/completions")
    completions = FakeCompletions(error=openai.APIConnectionError(request=request))
    with pytest.raises(UpstreamError) as info:
        asyncio.run(_generator(completions).generate("질문", ""))
    assert info.value.status_code == 500


def test_payload_without_text_is_malformed():
    completions = FakeCompletions(answer=None)
    with pytest.raises(MalformedResponseError):
        asyncio.run(_generator(completions).generate("질문", ""))
