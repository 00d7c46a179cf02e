from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from review_insights.services.claude_client import ClaudeClient
from review_insights.services.errors import ModelCallError

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _message(*texts, stop_reason="end_turn"):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=t) for t in texts],
        usage=SimpleNamespace(input_tokens=120, output_tokens=80),
        stop_reason=stop_reason,
    )


@pytest.fixture
def api():
    return MagicMock()


def _client(api):
    return ClaudeClient(api_key="test-key", model_name="claude-test", max_tokens=256, client=api)


def test_submit_returns_text(api):
    api.messages.create.return_value = _message('{"summary": ', '"ok"}')

    assert _client(api).submit("analyze this") == '{"summary": "ok"}'
    kwargs = api.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["max_tokens"] == 256
    assert kwargs["messages"] == [{"role": "user", "content": "analyze this"}]


def test_connection_error_becomes_model_call_error(api):
    api.messages.create.side_effect = anthropic.APIConnectionError(request=_REQUEST)

    with pytest.raises(ModelCallError):
        _client(api).submit("analyze this")


def test_authentication_error_becomes_model_call_error(api):
    api.messages.create.side_effect = anthropic.AuthenticationError(
        "invalid x-api-key",
        response=httpx.Response(401, request=_REQUEST),
        body=None,
    )

    with pytest.raises(ModelCallError) as excinfo:
        _client(api).submit("analyze this")
    assert "authentication" in excinfo.value.detail


def test_empty_reply_is_an_error(api):
    api.messages.create.return_value = _message(stop_reason="max_tokens")

    with pytest.raises(ModelCallError):
        _client(api).submit("analyze this")
