"""
Relationship-aware retrieval service.

Ingestion: EmailRecord -> features + embedding + relationship -> StoredExample
-> VectorIndex. Retrieval: query text or vector -> filtered similarity search,
re-ranked by example effectiveness.

All index and model calls are blocking and run in worker threads; transient
failures are retried with exponential backoff.
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
import structlog

from ..config import settings
from ..errors import TransientError, ValidationError
from ..features.extractor import FeatureExtractor, get_feature_extractor
from ..embeddings.base import EmbeddingProvider
from ..index.base import VectorIndex
from ..index.sql_index import cosine_similarities
from ..models.examples import (
    DateRange,
    EmailRecord,
    ExampleMetadata,
    IngestResult,
    ItemError,
    RelationshipTag,
    SearchParams,
    SearchResult,
    StoredExample,
)
from ..models.features import RecipientHint
from ..version import get_current_pipeline_version
from .relationship import RelationshipDetector
from .retry import with_retry


logger = structlog.get_logger(__name__)

# Effectiveness assumed for examples that have never been rated
NEUTRAL_EFFECTIVENESS = 0.5


def rerank_by_effectiveness(results: List[SearchResult], weight: float) -> List[SearchResult]:
    """
    Blend similarity with effectiveness and re-sort.

    rank_score = (1 - weight) * score + weight * effectiveness, with unrated
    examples counted at 0.5. A weight of 0 keeps the similarity order.

    Examples:
        >>> ranked = rerank_by_effectiveness(results, weight=0.1)
        >>> ranked[0].rank_score >= ranked[-1].rank_score
        True
    """
    if weight <= 0 or not results:
        return results

    ranked = []
    for result in results:
        effectiveness = result.metadata.usage.effectiveness_score
        if effectiveness is None:
            effectiveness = NEUTRAL_EFFECTIVENESS
        rank_score = (1.0 - weight) * result.score + weight * effectiveness
        ranked.append(result.model_copy(update={"rank_score": rank_score}))

    # Stable sort keeps similarity order among equal rank scores
    return sorted(ranked, key=lambda r: r.rank_score, reverse=True)


class RetrievalService:
    """
    Async facade over extractor, embedding provider and vector index.

    Args:
        index: Vector index backend
        provider: Embedding provider (dimensions must match the index)
        extractor: Feature extractor (default: shared instance)
        detector: Relationship detector (default: from settings)
        skip_near_duplicates: Skip ingestion of near-duplicate content
        near_duplicate_threshold: Similarity at which content counts as reused
        effectiveness_weight: Share of effectiveness in the rank score
        ingest_batch_size: Emails embedded and upserted per chunk
    """

    def __init__(
        self,
        index: VectorIndex,
        provider: EmbeddingProvider,
        extractor: Optional[FeatureExtractor] = None,
        detector: Optional[RelationshipDetector] = None,
        skip_near_duplicates: Optional[bool] = None,
        near_duplicate_threshold: Optional[float] = None,
        effectiveness_weight: Optional[float] = None,
        ingest_batch_size: Optional[int] = None,
    ):
        if provider.dimensions != index.dimensions:
            raise ValidationError(
                f"Provider dimensions {provider.dimensions} != index dimensions {index.dimensions}"
            )

        self.index = index
        self.provider = provider
        self.extractor = extractor or get_feature_extractor()
        self.detector = detector or RelationshipDetector.from_config()
        self.skip_near_duplicates = (
            settings.skip_near_duplicates if skip_near_duplicates is None else skip_near_duplicates
        )
        self.near_duplicate_threshold = (
            settings.near_duplicate_threshold
            if near_duplicate_threshold is None
            else near_duplicate_threshold
        )
        self.effectiveness_weight = (
            settings.effectiveness_rank_weight if effectiveness_weight is None else effectiveness_weight
        )
        self.ingest_batch_size = ingest_batch_size or settings.ingest_batch_size

        self.logger = logger.bind(component="retrieval_service")

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    async def _call_index(self, name: str, func, *args, **kwargs):
        """Run a blocking index call in a worker thread with retry."""
        return await with_retry(
            lambda: asyncio.to_thread(func, *args, **kwargs), operation_name=f"index_{name}"
        )

    async def embed_query(self, text: str) -> List[float]:
        """
        Embed a query text with retry.

        Raises:
            ValidationError: Empty text
            EmbeddingError: Provider still failing after retries
        """
        return await with_retry(lambda: self.provider.embed(text), operation_name="embed")

    def build_example(
        self,
        email: EmailRecord,
        vector: Sequence[float],
        relationship: Optional[RelationshipTag] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> StoredExample:
        """
        Assemble the StoredExample for an email and its vector.

        Features are extracted from the user's own text; the relationship
        comes from `relationship` when given, else from the detector.
        """
        features = self.extractor.extract(
            email.extracted_text,
            recipient_hint=RecipientHint(name=email.recipient_name, email=email.recipient_email),
        )
        if relationship is None:
            relationship = self.detector.detect(email.recipient_email, features, overrides)

        return StoredExample(
            id=email.id,
            user_id=email.user_id,
            vector=list(vector),
            metadata=ExampleMetadata(
                extracted_text=email.extracted_text,
                recipient_email=email.recipient_email.lower(),
                subject=email.subject,
                sent_date=email.sent_date,
                features=features.snapshot(),
                relationship=relationship,
                word_count=features.stats.word_count,
                pipeline_version=get_current_pipeline_version(
                    self.provider.model_version, self.provider.dimensions
                ).to_repr(),
            ),
        )

    async def _is_near_duplicate(self, user_id: str, example_id: str, vector: Sequence[float]) -> bool:
        matches = await self._call_index(
            "find_near_duplicates",
            self.index.find_near_duplicates,
            user_id,
            vector,
            self.near_duplicate_threshold,
        )
        # Re-ingesting the same id is a replacement, not reuse
        return any(match.id != example_id for match in matches)

    # ------------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------------

    async def ingest_email(
        self,
        email: EmailRecord,
        relationship: Optional[RelationshipTag] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> Optional[StoredExample]:
        """
        Ingest one email.

        Args:
            email: Normalized sent email
            relationship: Explicit relationship tag (skips detection)
            overrides: User-defined recipient -> relationship mapping

        Returns:
            The stored example, or None when skipped as a near duplicate

        Raises:
            ValidationError: Empty text, missing user id, dimension mismatch
            TransientError: Provider or index still failing after retries
        """
        if not email.extracted_text.strip():
            raise ValidationError(f"Email {email.id} has no extracted text")

        vector = await self.embed_query(email.extracted_text)

        if self.skip_near_duplicates and await self._is_near_duplicate(email.user_id, email.id, vector):
            self.logger.info("near_duplicate_skipped", user_id=email.user_id, example_id=email.id)
            return None

        example = self.build_example(email, vector, relationship, overrides)
        await self._call_index("upsert", self.index.upsert, example)

        self.logger.info(
            "email_ingested",
            user_id=email.user_id,
            example_id=email.id,
            relationship=example.metadata.relationship.type,
            detection_method=example.metadata.relationship.detection_method,
        )
        return example

    async def ingest_batch(
        self,
        emails: Sequence[EmailRecord],
        overrides: Optional[Mapping[str, str]] = None,
        deadline_seconds: Optional[float] = None,
        batch_size: Optional[int] = None,
    ) -> IngestResult:
        """
        Ingest many emails in chunks with per-item error isolation.

        Each chunk is embedded with bounded concurrency, checked for near
        duplicates (against the index and against earlier emails of the same
        batch) and upserted in one write. A deadline stops the batch cleanly
        between chunks or mid-embedding; the result then carries
        `incomplete=True` and everything completed so far.

        Args:
            emails: Emails to ingest
            overrides: User-defined recipient -> relationship mapping
            deadline_seconds: Overall time budget (None or 0: no deadline)
            batch_size: Chunk size (default: settings.ingest_batch_size)

        Returns:
            IngestResult with ingested ids, skipped duplicates and per-item errors
        """
        start_time = time.time()
        loop = asyncio.get_running_loop()
        deadline_seconds = deadline_seconds or settings.ingest_deadline_seconds or None
        deadline = loop.time() + deadline_seconds if deadline_seconds else None
        batch_size = batch_size or self.ingest_batch_size

        result = IngestResult()
        accepted: Dict[str, List[np.ndarray]] = {}

        positions = list(range(len(emails)))
        for chunk_start in range(0, len(positions), batch_size):
            chunk = positions[chunk_start : chunk_start + batch_size]

            remaining = None
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    result.incomplete = True
                    break

            incomplete = await self._ingest_chunk(emails, chunk, overrides, remaining, accepted, result)
            if incomplete:
                result.incomplete = True
                break

        result.processing_time_ms = (time.time() - start_time) * 1000
        result.errors.sort(key=lambda e: e.index)

        self.logger.info(
            "email_batch_ingested",
            total=len(emails),
            ingested=len(result.ingested_ids),
            skipped_duplicates=len(result.skipped_duplicates),
            errors=len(result.errors),
            incomplete=result.incomplete,
            processing_time_ms=result.processing_time_ms,
        )
        return result

    async def _ingest_chunk(
        self,
        emails: Sequence[EmailRecord],
        chunk: List[int],
        overrides: Optional[Mapping[str, str]],
        remaining: Optional[float],
        accepted: Dict[str, List[np.ndarray]],
        result: IngestResult,
    ) -> bool:
        """Embed, de-duplicate and upsert one chunk. Returns whether the deadline cut it short."""
        embedded = await self.provider.embed_batch(
            [emails[i].extracted_text for i in chunk], deadline_seconds=remaining
        )
        for error in embedded.errors:
            position = chunk[error.index]
            result.errors.append(
                ItemError(index=position, reason=error.reason, item_id=emails[position].id)
            )

        examples: List[StoredExample] = []
        example_positions: List[int] = []
        for offset, vector in enumerate(embedded.embeddings):
            if vector is None:
                continue
            position = chunk[offset]
            email = emails[position]

            if self.skip_near_duplicates:
                try:
                    duplicate = await self._is_near_duplicate(email.user_id, email.id, vector)
                except (TransientError, ValidationError) as e:
                    result.errors.append(ItemError(index=position, reason=str(e), item_id=email.id))
                    continue

                earlier = accepted.get(email.user_id)
                if not duplicate and earlier:
                    scores = cosine_similarities(vector, np.vstack(earlier))
                    duplicate = bool(np.max(scores) >= self.near_duplicate_threshold)

                if duplicate:
                    result.skipped_duplicates.append(email.id)
                    continue

            examples.append(self.build_example(email, vector, overrides=overrides))
            example_positions.append(position)
            accepted.setdefault(email.user_id, []).append(np.asarray(vector, dtype=float))

        if examples:
            try:
                await self._call_index("upsert_batch", self.index.upsert_batch, examples)
                result.ingested_ids.extend(example.id for example in examples)
            except (TransientError, ValidationError) as e:
                self.logger.error(
                    "ingest_chunk_upsert_failed",
                    chunk_size=len(examples),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                for position in example_positions:
                    result.errors.append(
                        ItemError(index=position, reason=str(e), item_id=emails[position].id)
                    )

        return embedded.incomplete

    # ------------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------------

    async def search(
        self,
        user_id: str,
        query_text: Optional[str] = None,
        query_vector: Optional[Sequence[float]] = None,
        relationship: Optional[str] = None,
        recipient_email: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        exclude_ids: Optional[Sequence[str]] = None,
        score_threshold: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        """
        Find the user's examples most similar to a query.

        Exactly one of `query_text` / `query_vector` is used (the vector wins
        when both are given). Results are re-ranked by effectiveness.

        A failing provider or index degrades to an empty list (logged) so the
        draft generator can still run without examples.

        Raises:
            ValidationError: Missing user id, no query, bad limit or dimensions
        """
        if not user_id:
            raise ValidationError("user_id is required")
        if limit is not None and limit <= 0:
            raise ValidationError(f"limit must be positive, got {limit}")

        try:
            if query_vector is None:
                if not query_text or not query_text.strip():
                    raise ValidationError("query_text or query_vector is required")
                query_vector = await self.embed_query(query_text)

            params = SearchParams(
                user_id=user_id,
                query_vector=list(query_vector),
                relationship=relationship,
                recipient_email=recipient_email,
                date_range=date_range,
                exclude_ids=list(exclude_ids or []),
                score_threshold=score_threshold,
                limit=limit,
            )
            results = await self._call_index("search", self.index.search, params)
        except TransientError as e:
            self.logger.error(
                "search_degraded_to_empty",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        return rerank_by_effectiveness(results, self.effectiveness_weight)

    async def find_near_duplicates(
        self,
        user_id: str,
        text: Optional[str] = None,
        vector: Optional[Sequence[float]] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """Stored examples of the user that look like reuse of the given content."""
        if vector is None:
            vector = await self.embed_query(text or "")
        return await self._call_index(
            "find_near_duplicates",
            self.index.find_near_duplicates,
            user_id,
            vector,
            self.near_duplicate_threshold if threshold is None else threshold,
        )

    async def get_by_relationship(
        self, user_id: str, relationship_type: str, limit: Optional[int] = None
    ) -> List[StoredExample]:
        return await self._call_index(
            "get_by_relationship", self.index.get_by_relationship, user_id, relationship_type, limit
        )

    async def get_relationship_stats(self, user_id: str) -> Dict[str, int]:
        return await self._call_index("get_relationship_stats", self.index.get_relationship_stats, user_id)

    async def count(self, user_id: str) -> int:
        return await self._call_index("count", self.index.count, user_id)

    async def delete_user_data(self, user_id: str) -> int:
        removed = await self._call_index("delete_user_data", self.index.delete_user_data, user_id)
        self.logger.info("user_examples_deleted", user_id=user_id, removed=removed)
        return removed

    async def health_check(self) -> bool:
        return await asyncio.to_thread(self.index.health_check)
