"""LLM client wrapper around litellm.

Calls Claude (or any model litellm supports) with one system and one user
message, retrying rate limits and server errors.
"""

import logging

from litellm import completion
from openai import APIError, APIStatusError

from gitlit.clients.errors import UpstreamError
from gitlit.retry import RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-haiku-20240307"


class LlmClient:
    """Wrapper for LLM API calls via litellm."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        retry: RetryPolicy | None = None,
        timeout: float = 20.0,
    ):
        self.model = model or DEFAULT_MODEL
        self.api_key = api_key
        self.retry = retry or RetryPolicy(max_attempts=3)
        self.timeout = timeout

    def call(
        self,
        system: str,
        user: str,
        max_tokens: int = 800,
        temperature: float = 0.2,
        retry: RetryPolicy | None = None,
    ) -> str:
        """Send a system+user message to the LLM and return the response text."""
        def attempt():
            try:
                return completion(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                    api_key=self.api_key,
                    timeout=self.timeout,
                )
            except APIStatusError as e:
                raise UpstreamError(e.status_code, "LLM request failed", str(e)) from e
            except APIError as e:
                # connection errors and timeouts carry no status
                raise UpstreamError(503, "LLM request failed", str(e)) from e

        response = call_with_retry(attempt, retry or self.retry)
        content = response.choices[0].message.content or ""
        logger.debug("LLM response: %d chars", len(content))
        return content
