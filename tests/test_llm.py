"""Tests for LLM client functionality."""

import httpx
import pytest
from unittest.mock import Mock, patch

import groq

from sdlcaudit.core.models import FailureReason
from sdlcaudit.llm import (
    AuthMissingError,
    GroqClient,
    GroqError,
    MalformedResponseError,
    RateLimitError,
    TokenLimitError,
    UpstreamConnectionError,
)


GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"


def api_response(content="Looks fine.", finish_reason="stop"):
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = content
    response.choices[0].finish_reason = finish_reason
    return response


def status_error(cls, status):
    request = httpx.Request("POST", GROQ_URL)
    return cls("error", response=httpx.Response(status, request=request), body=None)


@pytest.fixture
def sdk():
    with patch('sdlcaudit.llm.groq_client.Groq') as mock_groq_class:
        mock_client = Mock()
        mock_groq_class.return_value = mock_client
        yield mock_client


def make_client(**kwargs):
    kwargs.setdefault('api_key', 'test-key')
    kwargs.setdefault('retry_delay', 0)
    return GroqClient(**kwargs)


class TestGroqClient:
    """Tests for Groq LLM client."""

    def test_missing_key_raises_auth_missing(self):
        with pytest.raises(AuthMissingError) as exc_info:
            GroqClient()

        assert exc_info.value.reason == FailureReason.AUTH_MISSING

    def test_key_from_environment(self, sdk, mock_groq_api_key):
        assert GroqClient().api_key == 'test-key'

    def test_no_request_at_construction(self, sdk):
        make_client()

        sdk.chat.completions.create.assert_not_called()

    def test_chat_completion(self, sdk):
        sdk.chat.completions.create.return_value = api_response("Connection successful")
        client = make_client(model='llama-3.3-70b-versatile')

        response = client.chat_completion(
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
            max_tokens=800, temperature=0.3, timeout=30,
        )

        assert response.content == "Connection successful"
        assert response.model == 'llama-3.3-70b-versatile'
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs['max_tokens'] == 800
        assert kwargs['temperature'] == 0.3
        assert kwargs['timeout'] == 30
        assert kwargs['model'] == 'llama-3.3-70b-versatile'

        stats = client.get_usage_stats()
        assert stats['total_requests'] == 1
        assert stats['total_tokens'] == response.tokens_used

    def test_simple_completion(self, sdk):
        sdk.chat.completions.create.return_value = api_response("yes")

        assert make_client().simple_completion("test") == "yes"

    def test_unknown_roles_become_user(self, sdk):
        sdk.chat.completions.create.return_value = api_response()

        make_client().chat_completion([{"role": "tool", "content": "x"}])

        assert sdk.chat.completions.create.call_args.kwargs['messages'] == [{"role": "user", "content": "x"}]

    def test_empty_messages_rejected(self, sdk):
        with pytest.raises(ValueError):
            make_client().chat_completion([])

    def test_token_limit(self, sdk):
        client = make_client(context_window=100)

        with pytest.raises(TokenLimitError):
            client.chat_completion([{"role": "user", "content": "word " * 1000}], max_tokens=50)

        sdk.chat.completions.create.assert_not_called()

    def test_token_estimate_without_encoder(self, sdk):
        assert make_client().count_tokens("abcdefgh") == 2

    def test_no_choices_is_malformed(self, sdk):
        response = Mock()
        response.choices = []
        sdk.chat.completions.create.return_value = response

        with pytest.raises(MalformedResponseError):
            make_client().chat_completion([{"role": "user", "content": "x"}])


class TestErrorMapping:
    """SDK errors map onto the upstream failure taxonomy."""

    def test_authentication_error(self, sdk):
        sdk.chat.completions.create.side_effect = status_error(groq.AuthenticationError, 401)

        with pytest.raises(AuthMissingError):
            make_client().simple_completion("x")

        assert sdk.chat.completions.create.call_count == 1

    def test_rate_limit_is_retried(self, sdk):
        sdk.chat.completions.create.side_effect = [
            status_error(groq.RateLimitError, 429),
            api_response("second try"),
        ]

        assert make_client(max_retries=2).simple_completion("x") == "second try"
        assert sdk.chat.completions.create.call_count == 2

    def test_rate_limit_exhausts_retries(self, sdk):
        sdk.chat.completions.create.side_effect = status_error(groq.RateLimitError, 429)

        with pytest.raises(RateLimitError) as exc_info:
            make_client(max_retries=3).simple_completion("x")

        assert exc_info.value.reason == FailureReason.QUOTA_OR_RATE_LIMITED
        assert sdk.chat.completions.create.call_count == 3

    def test_connection_error(self, sdk):
        sdk.chat.completions.create.side_effect = groq.APIConnectionError(
            request=httpx.Request("POST", GROQ_URL))

        with pytest.raises(UpstreamConnectionError) as exc_info:
            make_client(max_retries=1).simple_completion("x")

        assert exc_info.value.reason == FailureReason.NETWORK_ERROR

    def test_timeout_error(self, sdk):
        sdk.chat.completions.create.side_effect = groq.APITimeoutError(
            request=httpx.Request("POST", GROQ_URL))

        with pytest.raises(UpstreamConnectionError):
            make_client(max_retries=1).simple_completion("x")

    def test_server_error(self, sdk):
        sdk.chat.completions.create.side_effect = status_error(groq.InternalServerError, 503)

        with pytest.raises(UpstreamConnectionError):
            make_client(max_retries=1).simple_completion("x")

    def test_bad_request(self, sdk):
        sdk.chat.completions.create.side_effect = status_error(groq.BadRequestError, 400)

        with pytest.raises(MalformedResponseError):
            make_client().simple_completion("x")

        assert sdk.chat.completions.create.call_count == 1

    def test_all_errors_share_base(self):
        for cls in (AuthMissingError, RateLimitError, TokenLimitError,
                    UpstreamConnectionError, MalformedResponseError):
            assert issubclass(cls, GroqError)
