"""
Embedding providers: text -> fixed-length vector.

The provider is a black box to the rest of the pipeline. Blocking model calls
run in worker threads; batches are chunked and encoded with bounded
concurrency, and a failing item never blocks the rest of its batch.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import structlog

from ..config import settings
from ..errors import EmbeddingError, ValidationError, VectorDimensionError
from ..models.examples import BatchEmbeddingResult, ItemError


logger = structlog.get_logger(__name__)


class EmbeddingProvider(ABC):
    """
    Base class for embedding providers.

    Subclasses implement `_encode`, a blocking call that turns a list of
    prepared texts into vectors. Everything else (truncation, validation,
    chunking, concurrency, deadlines) is shared.
    """

    def __init__(
        self,
        dimensions: Optional[int] = None,
        max_text_length: Optional[int] = None,
        batch_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.dimensions = dimensions or settings.embedding_dimensions
        self.max_text_length = max_text_length or settings.embedding_max_text_length
        self.batch_size = batch_size or settings.embedding_batch_size
        self.max_concurrency = max_concurrency or settings.embedding_max_concurrency

        self.logger = logger.bind(component="embedding_provider", provider=type(self).__name__)

    @property
    @abstractmethod
    def model_version(self) -> str:
        """Identifier stamped on stored examples."""

    @abstractmethod
    def _encode(self, texts: List[str]) -> List[List[float]]:
        """Blocking batch encode of already prepared texts."""

    def prepare_text(self, text: Optional[str]) -> str:
        """
        Validate and truncate one text.

        Raises:
            ValidationError: If the text is empty or whitespace-only
        """
        if text is None or not str(text).strip():
            raise ValidationError("Cannot embed empty text")
        return str(text).strip()[: self.max_text_length]

    def _check_vector(self, vector: Sequence[float]) -> List[float]:
        if len(vector) != self.dimensions:
            raise VectorDimensionError(self.dimensions, len(vector))
        return [float(x) for x in vector]

    def _encode_checked(self, texts: List[str]) -> List[List[float]]:
        try:
            vectors = self._encode(texts)
        except (ValidationError, EmbeddingError):
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding provider failed: {e}") from e
        return [self._check_vector(v) for v in vectors]

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Raises:
            ValidationError: Empty text or dimension mismatch
            EmbeddingError: Provider failure (retryable)
        """
        prepared = self.prepare_text(text)
        vectors = await asyncio.to_thread(self._encode_checked, [prepared])
        return vectors[0]

    async def embed_batch(
        self,
        texts: Sequence[Optional[str]],
        batch_size: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ) -> BatchEmbeddingResult:
        """
        Embed many texts with per-item error isolation.

        Args:
            texts: Texts to embed; `embeddings[i]` corresponds to `texts[i]`
            batch_size: Chunk size (default from settings)
            deadline_seconds: Stop after this long; unfinished positions stay None

        Returns:
            BatchEmbeddingResult with aligned embeddings, per-index errors and
            an `incomplete` flag set when the deadline cut the batch short
        """
        start_time = time.time()
        batch_size = batch_size or self.batch_size
        embeddings: List[Optional[List[float]]] = [None] * len(texts)
        errors: List[ItemError] = []

        prepared: Dict[int, str] = {}
        for index, text in enumerate(texts):
            try:
                prepared[index] = self.prepare_text(text)
            except ValidationError as e:
                errors.append(ItemError(index=index, reason=str(e)))

        indices = list(prepared)
        chunks = [indices[i : i + batch_size] for i in range(0, len(indices), batch_size)]
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_chunk(chunk: List[int]) -> None:
            async with semaphore:
                chunk_errors = await asyncio.to_thread(
                    self._encode_chunk, chunk, [prepared[i] for i in chunk], embeddings
                )
                errors.extend(chunk_errors)

        tasks = [asyncio.create_task(run_chunk(chunk)) for chunk in chunks]
        incomplete = False
        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=deadline_seconds)
            if pending:
                incomplete = True
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        elapsed_ms = (time.time() - start_time) * 1000
        self.logger.info(
            "embedding_batch_completed",
            total=len(texts),
            embedded=sum(1 for e in embeddings if e is not None),
            errors=len(errors),
            incomplete=incomplete,
            processing_time_ms=elapsed_ms,
        )

        return BatchEmbeddingResult(
            embeddings=embeddings,
            errors=sorted(errors, key=lambda e: e.index),
            incomplete=incomplete,
            total_time_ms=elapsed_ms,
        )

    def _encode_chunk(
        self,
        indices: List[int],
        chunk_texts: List[str],
        out: List[Optional[List[float]]],
    ) -> List[ItemError]:
        """
        Encode one chunk in a worker thread, writing into `out` by index.

        If the whole chunk fails, items are retried one by one so a single
        bad input only costs its own slot.
        """
        try:
            for index, vector in zip(indices, self._encode_checked(chunk_texts)):
                out[index] = vector
            return []
        except (EmbeddingError, ValidationError) as e:
            self.logger.warning(
                "embedding_chunk_failed",
                chunk_size=len(indices),
                error=str(e),
                error_type=type(e).__name__,
            )

        errors = []
        for index, text in zip(indices, chunk_texts):
            try:
                out[index] = self._encode_checked([text])[0]
            except (EmbeddingError, ValidationError) as e:
                errors.append(ItemError(index=index, reason=str(e)))
        return errors


