"""
Tests for response generators (Ollama is mocked)
"""
from unittest.mock import AsyncMock, patch

import pytest

from agentchat.config import Settings
from agentchat.services.response_generator import (
    MockResponseGenerator,
    OllamaResponseGenerator,
    UserProfile,
    build_response_generator,
    detect_language,
    sample_chart_data,
)


def history(*texts):
    return [{"id": str(i), "role": "user", "content": t} for i, t in enumerate(texts)]


@pytest.fixture
def requester():
    return UserProfile(id="u1", name="Alice", email="alice@example.com")


@pytest.fixture
def mock_generator():
    return MockResponseGenerator(min_delay=0, max_delay=0)


@pytest.mark.unit
@pytest.mark.asyncio
class TestMockResponseGenerator:

    async def test_code_request_returns_code_attachment(self, mock_generator, requester):
        result = await mock_generator.generate(history("Write a python function"), requester)

        assert result.ok
        attachment = result.attachments[0]
        assert attachment["type"] == "code"
        assert attachment["language"] == "python"
        assert "def " in attachment["content"]

    async def test_api_request_lists_configured_providers(self, mock_generator):
        requester = UserProfile(id="u1", api_providers=["openai", "anthropic"])

        result = await mock_generator.generate(history("Which api can I use?"), requester)

        assert result.ok
        assert "2 configured API(s): openai, anthropic" in result.content
        assert result.attachments == []

    async def test_api_request_without_providers_is_general(self, mock_generator, requester):
        result = await mock_generator.generate(history("Tell me about the api"), requester)

        assert result.ok
        assert 'Based on your message: "Tell me about the api"' in result.content

    async def test_analysis_request_returns_chart(self, mock_generator, requester):
        result = await mock_generator.generate(history("Please analyze my sales"), requester)

        chart = result.attachments[0]
        assert chart["type"] == "visualization"
        assert chart["chartType"] == "line"
        assert len(chart["data"]) == 12

    async def test_general_request_quotes_message(self, mock_generator, requester):
        result = await mock_generator.generate(history("Hello"), requester)

        assert result.ok
        assert 'Based on your message: "Hello"' in result.content

    async def test_requires_trailing_user_message(self, mock_generator, requester):
        messages = history("Hello") + [{"id": "x", "role": "assistant", "content": "Hi"}]

        result = await mock_generator.generate(messages, requester)

        assert not result.ok
        assert result.error == "No user message found"

    async def test_empty_history(self, mock_generator, requester):
        result = await mock_generator.generate([], requester)

        assert not result.ok


@pytest.mark.unit
class TestHelpers:

    @pytest.mark.parametrize("text,expected", [
        ("a react component", "react"),
        ("some flask code", "python"),
        ("a shell script", "javascript"),
    ])
    def test_detect_language(self, text, expected):
        assert detect_language(text) == expected

    def test_sample_chart_data_months(self):
        data = sample_chart_data(2024)

        assert [d["month"] for d in data][:3] == ["Jan", "Feb", "Mar"]
        assert all(50 <= d["value"] < 150 for d in data)


@pytest.mark.unit
@pytest.mark.asyncio
class TestOllamaResponseGenerator:

    async def test_sends_system_prompt_and_history(self, requester):
        generator = OllamaResponseGenerator("http://ollama:11434", "llama3", system_prompt="Be brief")
        chat = AsyncMock(return_value={"message": {"content": "  Hi there  "}})

        with patch.object(generator.client, "chat", chat):
            result = await generator.generate(history("Hello"), requester)

        assert result.ok
        assert result.content == "Hi there"
        kwargs = chat.call_args.kwargs
        assert kwargs["model"] == "llama3"
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]

    async def test_connection_error_is_failure(self, requester):
        generator = OllamaResponseGenerator("http://ollama:11434", "llama3")

        with patch.object(generator.client, "chat", AsyncMock(side_effect=ConnectionError("refused"))):
            result = await generator.generate(history("Hello"), requester)

        assert not result.ok
        assert "refused" in result.error

    async def test_empty_content_is_failure(self, requester):
        generator = OllamaResponseGenerator("http://ollama:11434", "llama3")

        with patch.object(generator.client, "chat", AsyncMock(return_value={"message": {"content": "   "}})):
            result = await generator.generate(history("Hello"), requester)

        assert not result.ok


@pytest.mark.unit
class TestBuildResponseGenerator:

    def test_mock_by_default(self):
        generator = build_response_generator(Settings(RESPONSE_GENERATOR="mock"))
        assert isinstance(generator, MockResponseGenerator)

    def test_ollama(self):
        generator = build_response_generator(Settings(RESPONSE_GENERATOR="Ollama", TEXT_MODEL="llama3"))
        assert isinstance(generator, OllamaResponseGenerator)
        assert generator.model == "llama3"

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_response_generator(Settings(RESPONSE_GENERATOR="gpt-5"))
