"""Stand-in provider used when no embedding credentials are configured.

Every call fails with EmbeddingAuthError, which EmbeddingGenerator does not
retry, so searches drop straight to the lexical fallback and indexing logs
the failure instead of the application refusing to start.
"""

from typing import Optional

from ...domain.ai.ports import EmbeddingProviderPort, EmbeddingResult, EmbeddingAuthError


class UnavailableEmbeddingProvider(EmbeddingProviderPort):
    def __init__(self, reason: str = "Embedding provider not configured"):
        self.reason = reason

    def embed_text(
        self,
        text: str,
        model: str = "text-embedding-3-small",
        dimensions: Optional[int] = None,
    ) -> EmbeddingResult:
        raise EmbeddingAuthError(self.reason)
