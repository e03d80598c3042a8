"""Groq LLM client for SDLC Auditor."""

import os
import time
import logging
import threading
from functools import lru_cache
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type
import tiktoken

import groq
from groq import Groq

from ..core.models import FailureReason


logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM with metadata."""
    content: str
    model: str
    tokens_used: int
    finish_reason: str
    response_time: float
    metadata: Dict[str, Any]


class GroqError(Exception):
    """Base exception for Groq client errors."""

    reason = FailureReason.NETWORK_ERROR


class AuthMissingError(GroqError):
    """Raised when no usable API key is configured or the key is rejected."""

    reason = FailureReason.AUTH_MISSING


class RateLimitError(GroqError):
    """Raised when rate limit or quota is exceeded."""

    reason = FailureReason.QUOTA_OR_RATE_LIMITED


class TokenLimitError(GroqError):
    """Raised when the prompt would not fit the model context window."""

    reason = FailureReason.QUOTA_OR_RATE_LIMITED


class UpstreamConnectionError(GroqError):
    """Raised on connection failures, timeouts and server-side errors."""

    reason = FailureReason.NETWORK_ERROR


class MalformedResponseError(GroqError):
    """Raised when the API answers with something we cannot use."""

    reason = FailureReason.MALFORMED_RESPONSE


@lru_cache(maxsize=1)
def _load_encoder():
    """Token encoder for counting. ``None`` when no encoding can be loaded."""
    try:
        return tiktoken.get_encoding("cl100k_base")  # Close approximation
    except Exception as e:
        logger.warning(f"Token encoder unavailable, estimating instead: {e}")
        return None


class GroqClient:
    """Client for interacting with Groq API."""

    def __init__(self,
                 api_key: Optional[str] = None,
                 model: str = "llama-3.3-70b-versatile",
                 timeout: int = 30,
                 max_retries: int = 3,
                 retry_delay: float = 1.0,
                 context_window: int = 32768):

        self.api_key = api_key or os.getenv('GROQ_API_KEY') or os.getenv('GROQ_API')
        if not self.api_key:
            raise AuthMissingError("Groq API key not provided")

        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.context_window = context_window

        # Usage tracking
        self._lock = threading.Lock()
        self._request_count = 0
        self._token_count = 0

        # SDK retries are disabled, retries happen in _make_request
        self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=0)

        self.logger = logging.getLogger(__name__)

    def count_tokens(self, text: str) -> int:
        """Count tokens in text."""
        encoder = _load_encoder()
        if encoder is not None:
            try:
                return len(encoder.encode(text))
            except Exception as e:
                self.logger.warning(f"Failed to count tokens: {e}")
        # Fallback estimation: ~4 chars per token
        return len(text) // 4

    def count_message_tokens(self, messages: List[Dict[str, str]]) -> int:
        """Count tokens in a list of messages."""
        total_tokens = 0

        for message in messages:
            total_tokens += self.count_tokens(message.get("role", ""))
            total_tokens += self.count_tokens(message.get("content", ""))
            total_tokens += 4  # Overhead per message

        total_tokens += 2  # Overhead for the conversation
        return total_tokens

    def _make_request(self, messages: List[Dict[str, str]], max_tokens: int,
                      temperature: float, timeout: float):
        """Make a request to Groq API with retries."""
        for attempt in Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_delay, min=self.retry_delay, max=10),
            retry=retry_if_exception_type((RateLimitError, UpstreamConnectionError)),
            reraise=True,
        ):
            with attempt:
                return self._send(messages, max_tokens, temperature, timeout)

    def _send(self, messages: List[Dict[str, str]], max_tokens: int,
              temperature: float, timeout: float):
        try:
            return self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except (groq.AuthenticationError, groq.PermissionDeniedError) as e:
            raise AuthMissingError(f"Groq rejected the API key: {e}")
        except groq.RateLimitError as e:
            raise RateLimitError(f"Rate limit exceeded: {e}")
        except (groq.APITimeoutError, groq.APIConnectionError) as e:
            raise UpstreamConnectionError(f"Could not reach Groq: {e}")
        except groq.APIStatusError as e:
            if e.status_code >= 500:
                raise UpstreamConnectionError(f"Groq server error {e.status_code}: {e}")
            raise MalformedResponseError(f"Groq rejected the request ({e.status_code}): {e}")
        except groq.APIError as e:
            raise GroqError(f"API request failed: {e}")

    def chat_completion(self,
                        messages: List[Dict[str, str]],
                        max_tokens: int = 1024,
                        temperature: float = 0.3,
                        timeout: Optional[float] = None) -> LLMResponse:
        """Send a chat completion request."""
        start_time = time.time()

        if not messages:
            raise ValueError("Messages cannot be empty")

        formatted_messages = []
        for msg in messages:
            role = msg.get("role")
            if role not in ("system", "user", "assistant"):
                role = "user"
            formatted_messages.append({"role": role, "content": msg.get("content", "")})

        input_tokens = self.count_message_tokens(formatted_messages)
        estimated_total_tokens = input_tokens + max_tokens
        if estimated_total_tokens > self.context_window:
            raise TokenLimitError(
                f"Total tokens ({estimated_total_tokens}) exceed model limit ({self.context_window})"
            )

        try:
            response = self._make_request(
                formatted_messages, max_tokens, temperature, timeout or self.timeout
            )
        except GroqError as e:
            response_time = time.time() - start_time
            self.logger.error(f"Groq request failed after {response_time:.2f}s: {e}")
            raise

        if not getattr(response, 'choices', None):
            raise MalformedResponseError("Groq response contained no choices")

        content = response.choices[0].message.content or ""
        finish_reason = response.choices[0].finish_reason or "unknown"

        output_tokens = self.count_tokens(content)
        total_tokens = input_tokens + output_tokens
        self._record_usage(total_tokens)

        response_time = time.time() - start_time
        self.logger.debug(
            f"Groq request completed: {input_tokens} input tokens, "
            f"{output_tokens} output tokens, {response_time:.2f}s"
        )

        return LLMResponse(
            content=content,
            model=self.model,
            tokens_used=total_tokens,
            finish_reason=finish_reason,
            response_time=response_time,
            metadata={
                'input_tokens': input_tokens,
                'output_tokens': output_tokens,
                'finish_reason': finish_reason,
                'model': self.model,
            }
        )

    def simple_completion(self, prompt: str, **kwargs) -> str:
        """Simple text completion."""
        messages = [{"role": "user", "content": prompt}]
        response = self.chat_completion(messages, **kwargs)
        return response.content

    def _record_usage(self, tokens_used: int) -> None:
        with self._lock:
            self._request_count += 1
            self._token_count += tokens_used

    def get_usage_stats(self) -> Dict[str, Any]:
        """Get usage statistics for this client."""
        with self._lock:
            return {
                'model': self.model,
                'total_requests': self._request_count,
                'total_tokens': self._token_count,
            }
