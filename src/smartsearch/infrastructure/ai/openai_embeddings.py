"""OpenAI embeddings client behind EmbeddingProviderPort.

One ``embeddings.create`` call per text. SDK retries are disabled because
EmbeddingGenerator owns retry and backoff; this adapter only translates
requests and errors.
"""

import logging
import os
from typing import Any, Optional

from openai import OpenAI, APIError, APITimeoutError, RateLimitError, AuthenticationError

from ...domain.ai.ports import (
    EmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingError,
    EmbeddingTimeoutError,
    EmbeddingRateLimitError,
    EmbeddingAuthError,
    EmbeddingServiceError,
    EmbeddingInvalidResponseError,
)

logger = logging.getLogger(__name__)

# Checked in order: the specific SDK errors subclass APIError
_SDK_ERRORS = (
    (AuthenticationError, EmbeddingAuthError, "authentication failed"),
    (RateLimitError, EmbeddingRateLimitError, "rate limit exceeded"),
    (APITimeoutError, EmbeddingTimeoutError, "request timed out"),
    (APIError, EmbeddingServiceError, "API error"),
)


def _translate_error(error: Exception) -> EmbeddingError:
    for sdk_error, port_error, label in _SDK_ERRORS:
        if isinstance(error, sdk_error):
            return port_error(f"OpenAI {label}: {error}")
    return EmbeddingInvalidResponseError(f"Unexpected error from OpenAI: {error}")


class OpenAIEmbeddingAdapter(EmbeddingProviderPort):
    """Embeds catalog and query text with the OpenAI embeddings API.

    The API key comes from the argument or the OPENAI_API_KEY environment
    variable. text-embedding-3 models accept up to 8191 input tokens and
    support shortened output through ``dimensions``.

    Example:
        adapter = OpenAIEmbeddingAdapter(api_key=settings.OPENAI_API_KEY, timeout=30)
        result = adapter.embed_text("Gaming laptop\\nCategory: Computers", dimensions=1536)
    """

    def __init__(self, api_key: Optional[str] = None, timeout: int = 30):
        """
        Raises:
            EmbeddingAuthError: No API key given or configured
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise EmbeddingAuthError("OPENAI_API_KEY not provided and not found in environment")

        self.timeout = timeout
        self.client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

    @staticmethod
    def _build_request(text: str, model: str, dimensions: Optional[int]) -> dict[str, Any]:
        request: dict[str, Any] = {"model": model, "input": [text]}
        if dimensions is not None:
            request["dimensions"] = dimensions
        return request

    def embed_text(
        self,
        text: str,
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = None,
    ) -> EmbeddingResult:
        """Embed one text.

        Raises:
            ValueError: Blank text
            EmbeddingTimeoutError, EmbeddingRateLimitError, EmbeddingAuthError,
            EmbeddingServiceError: Mapped from the SDK
            EmbeddingInvalidResponseError: Empty or malformed response
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        try:
            response = self.client.embeddings.create(**self._build_request(text, model, dimensions))
            if not response.data:
                raise EmbeddingInvalidResponseError("No embedding returned from API")
            vector = [float(v) for v in response.data[0].embedding]
            tokens = response.usage.total_tokens if response.usage else 0
        except EmbeddingError:
            raise
        except Exception as e:
            raise _translate_error(e) from e

        logger.debug("OpenAI embedding: model=%s dimension=%d tokens=%d", model, len(vector), tokens)
        return EmbeddingResult(embedding=vector, model=model, dimension=len(vector), tokens=tokens)
