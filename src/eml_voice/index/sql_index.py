"""
SQLAlchemy-backed vector index with exact cosine search.

Vectors are stored as JSON arrays next to their metadata. A search loads the
user's rows that pass the SQL filters (relationship, recipient, date range)
and ranks them with numpy, so results are exact and per-user isolation is
part of every query.

Writes are serialised by an in-process lock. Reads run concurrently, except
on single-connection engines (in-memory SQLite) where they share the lock.
"""

import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Dict, Generator, List, Optional, Sequence

import numpy as np
import structlog
from sqlalchemy import and_, delete, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..config import settings
from ..errors import TransientStoreError, ValidationError, VectorDimensionError
from ..models.examples import (
    ExampleMetadata,
    RelationshipTag,
    SearchParams,
    SearchResult,
    StoredExample,
    UsageStats,
    UsageUpdate,
)
from .base import AGGREGATE_RELATIONSHIP, VectorIndex
from .database import get_db_session, get_engine, is_single_connection
from .models import Base, DraftExampleLink, ExampleRecord, ExampleUsage


logger = structlog.get_logger(__name__)


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalise a datetime to naive UTC for storage and comparison.

    Examples:
        >>> to_utc_naive(datetime(2025, 1, 1, 12, tzinfo=timezone.utc))
        datetime.datetime(2025, 1, 1, 12, 0)
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """
    Raw cosine similarity of `query` against every row of `matrix`, in [-1, 1].

    Zero vectors score 0.0 against everything.
    """
    q = np.asarray(query, dtype=float)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denominators = row_norms * q_norm
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denominators > 0, dots / denominators, 0.0)
    return np.clip(scores, -1.0, 1.0)


class SqlVectorIndex(VectorIndex):
    """
    VectorIndex over any SQLAlchemy database.

    Args:
        engine: SQLAlchemy engine (default: application-wide engine)
        dimensions: Vector dimensionality D (default from settings)
        default_limit: Search limit when none is given
        default_threshold: Minimum similarity when none is given
        near_duplicate_threshold: Default threshold of find_near_duplicates
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        dimensions: Optional[int] = None,
        default_limit: Optional[int] = None,
        default_threshold: Optional[float] = None,
        near_duplicate_threshold: Optional[float] = None,
    ):
        self.engine = engine or get_engine()
        self.dimensions = dimensions or settings.embedding_dimensions
        self.default_limit = default_limit or settings.search_default_limit
        self.default_threshold = (
            settings.search_score_threshold if default_threshold is None else default_threshold
        )
        self.near_duplicate_threshold = (
            settings.near_duplicate_threshold
            if near_duplicate_threshold is None
            else near_duplicate_threshold
        )

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._write_lock = threading.RLock()
        self._serialize_reads = is_single_connection(self.engine)

        Base.metadata.create_all(self.engine)

        self.logger = logger.bind(component="vector_index")

    # ------------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------------

    @contextmanager
    def _session(self, write: bool = False) -> Generator[Session, None, None]:
        """
        Session with commit/rollback; backend failures surface as TransientStoreError.
        """
        lock = self._write_lock if (write or self._serialize_reads) else nullcontext()
        with lock:
            try:
                with get_db_session(self._session_factory) as session:
                    yield session
            except SQLAlchemyError as e:
                self.logger.error(
                    "index_operation_failed",
                    write=write,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise TransientStoreError(f"Vector index operation failed: {e}") from e

    # ------------------------------------------------------------------------
    # Validation and conversion
    # ------------------------------------------------------------------------

    @staticmethod
    def _require_user(user_id: Optional[str]) -> str:
        if not user_id or not str(user_id).strip():
            raise ValidationError("user_id is required")
        return user_id

    def _check_vector(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimensions:
            raise VectorDimensionError(self.dimensions, len(vector))

    @staticmethod
    def _check_limit(limit: Optional[int]) -> None:
        if limit is not None and limit <= 0:
            raise ValidationError(f"limit must be positive, got {limit}")

    @staticmethod
    def _to_record(example: StoredExample) -> ExampleRecord:
        meta = example.metadata
        return ExampleRecord(
            user_id=example.user_id,
            example_id=example.id,
            vector=[float(x) for x in example.vector],
            dimensions=len(example.vector),
            extracted_text=meta.extracted_text,
            recipient_email=meta.recipient_email.lower(),
            subject=meta.subject,
            sent_date=to_utc_naive(meta.sent_date),
            relationship_type=meta.relationship.type,
            relationship_confidence=meta.relationship.confidence,
            relationship_method=meta.relationship.detection_method,
            features=meta.features,
            word_count=meta.word_count,
            pipeline_version=meta.pipeline_version,
        )

    @staticmethod
    def _usage_from_stats(
        user_id: str, example_id: str, stats: UsageStats, frequency_score: float = 1.0
    ) -> ExampleUsage:
        rating_sum = (stats.effectiveness_score or 0.0) * stats.rating_count
        return ExampleUsage(
            user_id=user_id,
            example_id=example_id,
            times_used=stats.times_used,
            times_edited=stats.times_edited,
            edit_samples=stats.times_edited if stats.average_edit_distance is not None else 0,
            average_edit_distance=stats.average_edit_distance,
            rating_count=stats.rating_count,
            rating_sum=rating_sum,
            last_rating=stats.user_rating,
            effectiveness_score=stats.effectiveness_score,
            last_used_at=stats.last_used_at,
            frequency_score=frequency_score,
        )

    @staticmethod
    def _to_usage_stats(usage: Optional[ExampleUsage]) -> UsageStats:
        if usage is None:
            return UsageStats()
        return UsageStats(
            times_used=usage.times_used,
            times_edited=usage.times_edited,
            average_edit_distance=usage.average_edit_distance,
            rating_count=usage.rating_count,
            user_rating=usage.last_rating,
            last_used_at=usage.last_used_at,
            effectiveness_score=usage.effectiveness_score,
        )

    def _to_metadata(self, record: ExampleRecord, usage: Optional[ExampleUsage]) -> ExampleMetadata:
        return ExampleMetadata(
            extracted_text=record.extracted_text,
            recipient_email=record.recipient_email,
            subject=record.subject,
            sent_date=record.sent_date,
            features=record.features or {},
            relationship=RelationshipTag(
                type=record.relationship_type,
                confidence=record.relationship_confidence,
                detection_method=record.relationship_method,
            ),
            frequency_score=usage.frequency_score if usage is not None else 1.0,
            word_count=record.word_count,
            pipeline_version=record.pipeline_version,
            usage=self._to_usage_stats(usage),
        )

    def _to_example(self, record: ExampleRecord, usage: Optional[ExampleUsage]) -> StoredExample:
        return StoredExample(
            id=record.example_id,
            user_id=record.user_id,
            vector=record.vector,
            metadata=self._to_metadata(record, usage),
        )

    @staticmethod
    def _with_usage(user_id: str):
        """Select core rows of one user joined with their optional usage row."""
        return (
            select(ExampleRecord, ExampleUsage)
            .outerjoin(
                ExampleUsage,
                and_(
                    ExampleUsage.user_id == ExampleRecord.user_id,
                    ExampleUsage.example_id == ExampleRecord.example_id,
                ),
            )
            .where(ExampleRecord.user_id == user_id)
        )

    # ------------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------------

    def _write_examples(self, session: Session, examples: Sequence[StoredExample]) -> None:
        for example in examples:
            session.merge(self._to_record(example))
            existing = session.get(ExampleUsage, (example.user_id, example.id))
            if existing is None:
                session.add(
                    self._usage_from_stats(
                        example.user_id,
                        example.id,
                        example.metadata.usage,
                        frequency_score=example.metadata.frequency_score,
                    )
                )

    def _validate_example(self, example: StoredExample) -> None:
        self._require_user(example.user_id)
        self._check_vector(example.vector)

    def upsert(self, example: StoredExample) -> None:
        """
        Insert or replace one example.

        Re-ingesting an id replaces the core record; accumulated usage for
        that id is kept.

        Raises:
            ValidationError: Missing user id or wrong dimensionality
            TransientStoreError: Backend failure
        """
        self._validate_example(example)
        with self._session(write=True) as session:
            self._write_examples(session, [example])

        self.logger.debug("example_upserted", user_id=example.user_id, example_id=example.id)

    def upsert_batch(self, examples: Sequence[StoredExample]) -> int:
        if not examples:
            return 0

        for example in examples:
            self._validate_example(example)

        # Last occurrence of a duplicated id wins
        unique = {(e.user_id, e.id): e for e in examples}
        with self._session(write=True) as session:
            self._write_examples(session, list(unique.values()))

        self.logger.info("examples_upserted", count=len(unique))
        return len(unique)

    def delete_user_data(self, user_id: str) -> int:
        self._require_user(user_id)
        with self._session(write=True) as session:
            removed = session.execute(
                delete(ExampleRecord).where(ExampleRecord.user_id == user_id)
            ).rowcount
            session.execute(delete(ExampleUsage).where(ExampleUsage.user_id == user_id))
            session.execute(delete(DraftExampleLink).where(DraftExampleLink.user_id == user_id))

        self.logger.info("user_data_deleted", user_id=user_id, removed=removed)
        return removed or 0

    def update_usage_stats(self, updates: Sequence[UsageUpdate]) -> int:
        """
        Merge usage updates into the mutable usage rows.

        - was_used: times_used += 1, frequency_score += 1, last_used_at = now
        - was_edited: times_edited += 1
        - edit_distance: folded into the running average edit distance
        - user_rating: folded into the running mean effectiveness

        Each update touches only the example of its own user. Unknown
        (user_id, vector_id) pairs are skipped silently.
        """
        if not updates:
            return 0
        for update in updates:
            self._require_user(update.user_id)

        applied = 0
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        with self._session(write=True) as session:
            for update in updates:
                key = (update.user_id, update.vector_id)
                if session.get(ExampleRecord, key) is None:
                    self.logger.debug(
                        "usage_update_unknown_id", user_id=update.user_id, vector_id=update.vector_id
                    )
                    continue

                usage = session.get(ExampleUsage, key)
                if usage is None:
                    usage = self._usage_from_stats(update.user_id, update.vector_id, UsageStats())
                    session.add(usage)
                self._apply_update(usage, update, now)
                applied += 1

        self.logger.debug("usage_stats_updated", requested=len(updates), applied=applied)
        return applied

    @staticmethod
    def _apply_update(usage: ExampleUsage, update: UsageUpdate, now: datetime) -> None:
        if update.was_used:
            usage.times_used = (usage.times_used or 0) + 1
            usage.frequency_score = (usage.frequency_score or 1.0) + 1
            usage.last_used_at = now
        if update.was_edited:
            usage.times_edited = (usage.times_edited or 0) + 1
        if update.edit_distance is not None:
            samples = usage.edit_samples or 0
            previous = usage.average_edit_distance or 0.0
            usage.average_edit_distance = (previous * samples + update.edit_distance) / (samples + 1)
            usage.edit_samples = samples + 1
        if update.user_rating is not None:
            usage.rating_sum = (usage.rating_sum or 0.0) + update.user_rating
            usage.rating_count = (usage.rating_count or 0) + 1
            usage.last_rating = update.user_rating
            usage.effectiveness_score = float(
                np.clip(usage.rating_sum / usage.rating_count, 0.0, 1.0)
            )

    def record_draft_examples(self, user_id: str, draft_id: str, example_ids: Sequence[str]) -> None:
        self._require_user(user_id)
        if not example_ids:
            return
        with self._session(write=True) as session:
            for example_id in dict.fromkeys(example_ids):
                session.merge(
                    DraftExampleLink(draft_id=draft_id, example_id=example_id, user_id=user_id)
                )

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    def search(self, params: SearchParams) -> List[SearchResult]:
        """
        Filtered similarity search.

        Order of operations: SQL filters (user, relationship, recipient,
        date range) -> cosine ranking -> threshold -> exclude_ids -> limit.

        Raises:
            ValidationError: Missing user id, wrong query dimensionality
            TransientStoreError: Backend failure
        """
        self._require_user(params.user_id)
        self._check_vector(params.query_vector)
        self._check_limit(params.limit)
        limit = params.limit or self.default_limit
        threshold = self.default_threshold if params.score_threshold is None else params.score_threshold

        query = self._with_usage(params.user_id)
        if params.relationship:
            query = query.where(ExampleRecord.relationship_type == params.relationship)
        if params.recipient_email:
            query = query.where(ExampleRecord.recipient_email == params.recipient_email.lower())
        if params.date_range:
            query = query.where(
                ExampleRecord.sent_date >= to_utc_naive(params.date_range.start),
                ExampleRecord.sent_date <= to_utc_naive(params.date_range.end),
            )
        query = query.order_by(ExampleRecord.example_id)

        with self._session() as session:
            rows = session.execute(query).all()

        if not rows:
            return []

        matrix = np.asarray([record.vector for record, _ in rows], dtype=float)
        scores = cosine_similarities(params.query_vector, matrix)
        excluded = set(params.exclude_ids)

        results: List[SearchResult] = []
        for position in np.argsort(-scores, kind="stable"):
            score = float(scores[position])
            if score < threshold:
                break
            record, usage = rows[position]
            if record.example_id in excluded:
                continue
            results.append(
                SearchResult(id=record.example_id, score=score, metadata=self._to_metadata(record, usage))
            )
            if len(results) >= limit:
                break

        self.logger.debug(
            "index_searched",
            user_id=params.user_id,
            candidates=len(rows),
            returned=len(results),
            relationship=params.relationship,
        )
        return results

    def find_near_duplicates(
        self,
        user_id: str,
        vector: Sequence[float],
        threshold: Optional[float] = None,
        limit: int = 10,
    ) -> List[SearchResult]:
        return self.search(
            SearchParams(
                user_id=self._require_user(user_id),
                query_vector=list(vector),
                score_threshold=self.near_duplicate_threshold if threshold is None else threshold,
                limit=limit,
            )
        )

    def get_by_relationship(
        self, user_id: str, relationship_type: str, limit: Optional[int] = None
    ) -> List[StoredExample]:
        self._require_user(user_id)
        self._check_limit(limit)

        query = self._with_usage(user_id)
        if relationship_type != AGGREGATE_RELATIONSHIP:
            query = query.where(ExampleRecord.relationship_type == relationship_type)
        query = query.order_by(ExampleRecord.sent_date.desc(), ExampleRecord.example_id).limit(
            limit or self.default_limit
        )

        with self._session() as session:
            rows = session.execute(query).all()

        return [self._to_example(record, usage) for record, usage in rows]

    def get_relationship_stats(self, user_id: str) -> Dict[str, int]:
        self._require_user(user_id)
        query = (
            select(ExampleRecord.relationship_type, func.count())
            .where(ExampleRecord.user_id == user_id)
            .group_by(ExampleRecord.relationship_type)
        )
        with self._session() as session:
            rows = session.execute(query).all()
        return {relationship: int(count) for relationship, count in rows}

    def get(self, user_id: str, example_id: str) -> Optional[StoredExample]:
        self._require_user(user_id)
        query = self._with_usage(user_id).where(ExampleRecord.example_id == example_id)
        with self._session() as session:
            row = session.execute(query).first()
        if row is None:
            return None
        return self._to_example(row[0], row[1])

    def count(self, user_id: str) -> int:
        self._require_user(user_id)
        query = select(func.count()).select_from(ExampleRecord).where(ExampleRecord.user_id == user_id)
        with self._session() as session:
            return int(session.execute(query).scalar_one())

    def get_effectiveness(self, user_id: str, example_ids: Sequence[str]) -> Dict[str, Optional[float]]:
        self._require_user(user_id)
        scores: Dict[str, Optional[float]] = {example_id: None for example_id in example_ids}
        if not scores:
            return scores

        query = select(ExampleUsage.example_id, ExampleUsage.effectiveness_score).where(
            ExampleUsage.user_id == user_id,
            ExampleUsage.example_id.in_(list(scores)),
        )
        with self._session() as session:
            rows = session.execute(query).all()

        for example_id, score in rows:
            if score is not None:
                scores[example_id] = score
        return scores

    def get_draft_examples(self, user_id: str, draft_id: str) -> List[str]:
        self._require_user(user_id)
        query = (
            select(DraftExampleLink.example_id)
            .where(DraftExampleLink.user_id == user_id, DraftExampleLink.draft_id == draft_id)
            .order_by(DraftExampleLink.example_id)
        )
        with self._session() as session:
            return list(session.execute(query).scalars().all())

    def health_check(self) -> bool:
        try:
            with self._session() as session:
                session.execute(text("SELECT 1"))
            return True
        except TransientStoreError:
            return False
