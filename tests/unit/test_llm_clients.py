# tests/unit/test_llm_clients.py
"""Tests for the OpenAI and Ollama structured-output clients and their retry policy."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest
from ollama import ResponseError
from tenacity import wait_none

from formiq.config.schema import FormIQConfig
from formiq.errors import GenerationError
from formiq.llm import OllamaClient, OpenAIClient, create_llm_client
from formiq.llm.openai_client import extract_response_text
from formiq.llm.retry import is_retryable

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")

CALL = {
    "system_prompt": "You write focus questions.",
    "user_prompt": "PROJECT_INTAKE_JSON: {}",
    "schema_name": "focus_questions",
    "schema": {"type": "object"},
    "description": "FormIQ focus questions payload",
}


def _status_error(status_code: int) -> openai.APIStatusError:
    return openai.APIStatusError(
        "error", response=httpx.Response(status_code, request=REQUEST), body=None
    )


def _openai_client() -> OpenAIClient:
    return OpenAIClient(model="gpt-5-mini", api_key="sk-test")


class TestIsRetryable:
    """Which provider failures are worth another attempt."""

    @pytest.mark.parametrize(
        "error",
        [
            ConnectionError("refused"),
            httpx.ConnectError("refused", request=REQUEST),
            openai.APIConnectionError(request=REQUEST),
            openai.APITimeoutError(request=REQUEST),
            _status_error(429),
            _status_error(503),
            ResponseError("overloaded", status_code=502),
        ],
    )
    def test_transient(self, error):
        assert is_retryable(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            _status_error(400),
            _status_error(401),
            ResponseError("model not found", status_code=404),
            GenerationError("OpenAI returned an empty response body"),
            ValueError("bad"),
        ],
    )
    def test_permanent(self, error):
        assert is_retryable(error) is False


class TestExtractResponseText:
    def test_output_text(self):
        assert extract_response_text(SimpleNamespace(output_text='  {"a": 1} ')) == '{"a": 1}'

    def test_falls_back_to_message_parts(self):
        response = SimpleNamespace(
            output_text="",
            output=[
                SimpleNamespace(type="reasoning", content=None),
                SimpleNamespace(
                    type="message",
                    content=[
                        SimpleNamespace(type="refusal", text="no"),
                        SimpleNamespace(type="output_text", text='{"b": 2}'),
                    ],
                ),
            ],
        )
        assert extract_response_text(response) == '{"b": 2}'

    def test_empty_body(self):
        with pytest.raises(GenerationError, match="empty response body"):
            extract_response_text(SimpleNamespace(output_text=None, output=[]))


class TestOpenAIClient:
    """Responses API calls."""

    @pytest.mark.asyncio
    async def test_generate_structured_request(self):
        client = _openai_client()
        with patch.object(client._client.responses, "create", new_callable=AsyncMock) as create:
            create.return_value = SimpleNamespace(output_text='{"questions": []}')

            text = await client.generate_structured(**CALL)

        assert text == '{"questions": []}'
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-5-mini"
        assert kwargs["instructions"] == CALL["system_prompt"]
        assert kwargs["input"] == [{"role": "user", "content": CALL["user_prompt"]}]
        assert kwargs["store"] is False
        assert kwargs["text"]["format"] == {
            "type": "json_schema",
            "name": "focus_questions",
            "description": "FormIQ focus questions payload",
            "schema": {"type": "object"},
            "strict": True,
        }

    @pytest.mark.asyncio
    async def test_retries_transient_status(self):
        client = _openai_client()
        with patch.object(client._client.responses, "create", new_callable=AsyncMock) as create:
            create.side_effect = [_status_error(503), SimpleNamespace(output_text="{}")]

            generate = OpenAIClient.generate_structured.retry_with(wait=wait_none())
            text = await generate(client, **CALL)

        assert text == "{}"
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self):
        client = _openai_client()
        with patch.object(client._client.responses, "create", new_callable=AsyncMock) as create:
            create.side_effect = _status_error(400)

            with pytest.raises(openai.APIStatusError):
                await client.generate_structured(**CALL)

        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check(self):
        client = _openai_client()
        with patch.object(client._client.models, "retrieve", new_callable=AsyncMock) as retrieve:
            assert await client.health_check() is True
            retrieve.side_effect = openai.APIConnectionError(request=REQUEST)
            assert await client.health_check() is False


class TestOllamaClient:
    """Chat calls with format=schema."""

    @staticmethod
    def _client() -> OllamaClient:
        return OllamaClient(base_url="http://localhost:11434", model="qwen2.5:14b-instruct")

    @pytest.mark.asyncio
    async def test_generate_structured_request(self):
        client = self._client()
        with patch.object(client.client, "chat", new_callable=AsyncMock) as chat:
            chat.return_value = SimpleNamespace(message=SimpleNamespace(content=' {"x": 1}\n'))

            text = await client.generate_structured(**CALL)

        assert text == '{"x": 1}'
        kwargs = chat.call_args.kwargs
        assert kwargs["format"] == {"type": "object"}
        assert kwargs["options"] == {"temperature": 0}
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1] == {"role": "user", "content": CALL["user_prompt"]}

    @pytest.mark.asyncio
    async def test_empty_answer(self):
        client = self._client()
        with patch.object(client.client, "chat", new_callable=AsyncMock) as chat:
            chat.return_value = SimpleNamespace(message=SimpleNamespace(content=""))

            with pytest.raises(GenerationError, match="Ollama returned an empty response"):
                await client.generate_structured(**CALL)

        assert chat.await_count == 1

    @pytest.mark.asyncio
    async def test_health_check_model_missing_still_healthy(self):
        client = self._client()
        with patch.object(client.client, "list", new_callable=AsyncMock) as mock_list:
            mock_list.return_value = SimpleNamespace(models=[SimpleNamespace(model="llama3:8b")])
            assert await client.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_server_down(self):
        client = self._client()
        with patch.object(client.client, "list", new_callable=AsyncMock) as mock_list:
            mock_list.side_effect = ConnectionError("Connection refused")
            assert await client.health_check() is False


class TestFactory:
    def test_openai_by_default(self):
        client = create_llm_client(FormIQConfig(openai={"api_key": "sk-test"}))
        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-5-mini"

    def test_ollama(self):
        config = FormIQConfig(provider="ollama", ollama={"model": "mistral"})
        client = create_llm_client(config)
        assert isinstance(client, OllamaClient)
        assert client.model == "mistral"
