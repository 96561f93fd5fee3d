"""OpenAI review gateway for code-review.

Sends the diff document to the OpenAI Chat Completions API together with the
review system prompt and returns the model's answer. The reviewer is immutable:
use with_model() to review with a different model.
"""

from __future__ import annotations

from typing import Any

from openai import OpenAI, OpenAIError

from code_review.logging_config import get_logger
from code_review.prompts import get_review_messages
from code_review.reviewers.base import Reviewer, ReviewGatewayError

logger = get_logger()

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_TOKENS = 1000


class OpenAIReviewer(Reviewer):
    """Reviewer backed by the OpenAI Chat Completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize OpenAI reviewer.

        Args:
            api_key: OpenAI API key
            model: Model identifier (e.g., "gpt-4o-mini", "gpt-4o")
            max_tokens: Maximum tokens in the review
            timeout: Seconds allowed for the API call (None = SDK default)
            client: Preconfigured client; built from api_key when None
        """
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._timeout = timeout
        # Retries are left to the caller
        self._client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def model(self) -> str:
        return self._model

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    def with_model(self, model: str) -> OpenAIReviewer:
        """Return a reviewer identical to this one but using another model."""
        return OpenAIReviewer(
            api_key=self._api_key,
            model=model,
            max_tokens=self._max_tokens,
            timeout=self._timeout,
            client=self._client,
        )

    def review(self, document: str) -> str:
        """Send the diff document to OpenAI for review.

        Args:
            document: The ``<git-diff>`` document built by DiffFormatter.

        Returns:
            The review text.

        Raises:
            ReviewGatewayError: If the API call fails or returns no content.
        """
        logger.info(f"Sending {len(document)} characters to OpenAI ({self._model})")
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=get_review_messages(document),
                max_tokens=self._max_tokens,
            )
        except OpenAIError as e:
            raise ReviewGatewayError(f"ChatCompletion error: {e}", original_error=e) from e

        if not response.choices:
            raise ReviewGatewayError("ChatCompletion error: response contained no choices")

        content = response.choices[0].message.content
        if not content:
            finish_reason = response.choices[0].finish_reason
            raise ReviewGatewayError(
                f"ChatCompletion error: empty review (finish reason: {finish_reason})"
            )

        return content.strip()
