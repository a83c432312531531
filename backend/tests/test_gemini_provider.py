"""Tests for the Gemini provider with the google-genai client mocked out."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from taskflow.ai.exceptions import AIConfigurationError, AIProviderError, AIRateLimitError
from taskflow.ai.providers import AIMessage, GeminiProvider, GenerationOptions

MESSAGES = [
    AIMessage(role="system", content="You are a project analyst."),
    AIMessage(role="user", content="Assess this task."),
    AIMessage(role="assistant", content="Sure."),
]


def gemini_response(text='{"risk_score": 0.4}', candidates=True):
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name="STOP"))] if candidates else [],
        usage_metadata=SimpleNamespace(prompt_token_count=120, candidates_token_count=30),
    )


@pytest.fixture
def client_factory():
    with patch("taskflow.ai.providers.gemini.genai.Client") as factory:
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=gemini_response())
        factory.return_value = client
        yield factory


@pytest.mark.asyncio
async def test_complete(client_factory):
    provider = GeminiProvider(api_key="key", default_model="gemini-test")

    response = await provider.complete(MESSAGES, options=GenerationOptions(temperature=0.2))

    assert response.content == '{"risk_score": 0.4}'
    assert response.model == "gemini-test"
    assert response.total_tokens == 150
    assert response.finish_reason == "stop"

    call = client_factory.return_value.aio.models.generate_content.await_args
    assert call.kwargs["model"] == "gemini-test"
    assert [c.role for c in call.kwargs["contents"]] == ["user", "model"]
    config = call.kwargs["config"]
    assert config.system_instruction == "You are a project analyst."
    assert config.temperature == 0.2
    assert config.response_mime_type == "application/json"


@pytest.mark.asyncio
async def test_model_override(client_factory):
    response = await GeminiProvider(api_key="key").complete(MESSAGES, model="gemini-pro")
    assert response.model == "gemini-pro"


@pytest.mark.asyncio
async def test_missing_api_key(client_factory):
    with pytest.raises(AIConfigurationError) as excinfo:
        await GeminiProvider(api_key="").complete(MESSAGES)
    assert excinfo.value.message == "GEMINI_API_KEY environment variable is not configured"
    client_factory.assert_not_called()


@pytest.mark.asyncio
async def test_quota_error_is_rate_limit(client_factory):
    generate = client_factory.return_value.aio.models.generate_content
    generate.side_effect = RuntimeError("429 Resource has been exhausted (check quota)")

    with pytest.raises(AIRateLimitError):
        await GeminiProvider(api_key="key").complete(MESSAGES)


@pytest.mark.asyncio
async def test_other_errors_are_provider_errors(client_factory):
    generate = client_factory.return_value.aio.models.generate_content
    generate.side_effect = RuntimeError("400 API key not valid")

    with pytest.raises(AIProviderError) as excinfo:
        await GeminiProvider(api_key="key").complete(MESSAGES)
    assert excinfo.value.message == "[gemini] 400 API key not valid"


@pytest.mark.asyncio
async def test_no_candidates(client_factory):
    generate = client_factory.return_value.aio.models.generate_content
    generate.return_value = gemini_response(candidates=False)

    with pytest.raises(AIProviderError, match="Invalid response structure"):
        await GeminiProvider(api_key="key").complete(MESSAGES)


@pytest.mark.asyncio
async def test_empty_messages_rejected(client_factory):
    with pytest.raises(ValueError):
        await GeminiProvider(api_key="key").complete([])
