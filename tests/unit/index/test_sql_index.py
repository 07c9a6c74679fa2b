"""
Unit tests for the SQL-backed vector index.

Tests coverage:
- upsert / upsert_batch: idempotence, dimension checks, duplicate ids in a batch
- search: ranking, filter conjunction, threshold, exclude_ids, limit, isolation
- get_by_relationship / get_relationship_stats / aggregate view
- update_usage_stats: merge semantics, unknown ids, survival across re-ingest
- delete_user_data, effectiveness lookup, draft links, health check
"""

from datetime import datetime, timezone

import numpy as np
import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError

from eml_voice.errors import TransientStoreError, ValidationError, VectorDimensionError
from eml_voice.index import AGGREGATE_RELATIONSHIP, SqlVectorIndex, cosine_similarities
from eml_voice.index.database import create_index_engine
from eml_voice.index.sql_index import to_utc_naive
from eml_voice.models.examples import DateRange, SearchParams, UsageUpdate

from tests.fixtures.examples import TEST_DIMENSIONS, make_example, unit_vector


def params(**kwargs) -> SearchParams:
    kwargs.setdefault("user_id", "user-1")
    kwargs.setdefault("query_vector", unit_vector(0))
    return SearchParams(**kwargs)


# ============================================================================
# Test Class: Helpers
# ============================================================================


@pytest.mark.unit
class TestHelpers:
    """Module-level helpers."""

    def test_cosine_of_identical_vectors(self):
        """Same direction scores 1, orthogonal scores 0."""
        matrix = np.asarray([unit_vector(0), unit_vector(1)])

        scores = cosine_similarities(unit_vector(0), matrix)

        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == pytest.approx(0.0)

    def test_cosine_of_opposite_vector_is_negative(self):
        """Opposite vectors score -1."""
        opposite = [-x for x in unit_vector(0)]

        scores = cosine_similarities(unit_vector(0), np.asarray([opposite]))

        assert scores[0] == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        """A zero vector never divides by zero."""
        scores = cosine_similarities([0.0] * TEST_DIMENSIONS, np.asarray([unit_vector(0)]))

        assert scores[0] == 0.0

    def test_aware_datetime_normalized_to_naive_utc(self):
        """Timezone-aware datetimes are stored as naive UTC."""
        aware = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)

        assert to_utc_naive(aware) == datetime(2025, 1, 1, 12)


# ============================================================================
# Test Class: Writes
# ============================================================================


@pytest.mark.unit
class TestUpsert:
    """Insert-or-replace semantics."""

    def test_self_match_scores_one(self, index):
        """An example matches its own vector with score 1."""
        index.upsert(make_example("m1", vector=unit_vector(3)))

        results = index.search(params(query_vector=unit_vector(3)))

        assert [r.id for r in results] == ["m1"]
        assert results[0].score == pytest.approx(1.0)

    def test_upsert_is_idempotent(self, index):
        """Writing the same example twice keeps one record."""
        example = make_example("m1")

        index.upsert(example)
        index.upsert(example)

        assert index.count("user-1") == 1

    def test_upsert_replaces_core_record(self, index):
        """A second upsert replaces text and features."""
        index.upsert(make_example("m1", text="First version"))
        index.upsert(make_example("m1", text="Second version"))

        stored = index.get("user-1", "m1")

        assert stored.metadata.extracted_text == "Second version"

    def test_wrong_dimensions_rejected(self, index):
        """Vectors of the wrong size are refused and nothing is written."""
        with pytest.raises(VectorDimensionError) as exc_info:
            index.upsert(make_example("m1", vector=[1.0, 0.0, 0.0]))

        assert exc_info.value.expected == TEST_DIMENSIONS
        assert exc_info.value.actual == 3
        assert index.count("user-1") == 0

    def test_dimension_error_is_validation_error(self):
        """Dimension errors are client errors."""
        assert issubclass(VectorDimensionError, ValidationError)

    def test_batch_returns_count_and_last_duplicate_wins(self, index):
        """Within a batch the last write for an id wins."""
        written = index.upsert_batch([
            make_example("m1", text="old"),
            make_example("m2"),
            make_example("m1", text="new"),
        ])

        assert written == 2
        assert index.count("user-1") == 2
        assert index.get("user-1", "m1").metadata.extracted_text == "new"

    def test_empty_batch(self, index):
        """An empty batch writes nothing."""
        assert index.upsert_batch([]) == 0

    def test_batch_with_invalid_item_writes_nothing(self, index):
        """One bad item rolls back the whole batch."""
        with pytest.raises(VectorDimensionError):
            index.upsert_batch([make_example("m1"), make_example("m2", vector=[1.0])])

        assert index.count("user-1") == 0

    def test_recipient_email_lowercased(self, index):
        """Recipient emails are stored lowercased."""
        index.upsert(make_example("m1", recipient_email="Sam@Acme.IO"))

        assert index.get("user-1", "m1").metadata.recipient_email == "sam@acme.io"


# ============================================================================
# Test Class: Search
# ============================================================================


@pytest.mark.unit
class TestSearch:
    """Filtered similarity search."""

    @pytest.fixture
    def populated(self, index):
        index.upsert_batch([
            make_example("close", vector=unit_vector(0, other=1, mix=0.5), relationship="colleagues"),
            make_example("medium", vector=unit_vector(0, other=1, mix=1.0), relationship="friends",
                         recipient_email="bob@gmail.com"),
            make_example("far", vector=unit_vector(0, other=1, mix=2.0), relationship="colleagues",
                         sent_date=datetime(2024, 6, 1, 8, 0, 0)),
            make_example("orthogonal", vector=unit_vector(5), relationship="colleagues"),
        ])
        return index

    def test_results_ranked_by_score(self, populated):
        """Results come back in descending score order."""
        results = populated.search(params())

        assert [r.id for r in results] == ["close", "medium", "far"]
        assert results[0].score == pytest.approx(1 / np.sqrt(1.25))
        assert all(a.score >= b.score for a, b in zip(results, results[1:]))

    def test_default_threshold_drops_unrelated(self, populated):
        """Orthogonal examples fall below the default threshold."""
        ids = [r.id for r in populated.search(params())]

        assert "orthogonal" not in ids

    def test_explicit_threshold(self, populated):
        """A higher threshold keeps only close matches."""
        results = populated.search(params(score_threshold=0.8))

        assert [r.id for r in results] == ["close"]

    def test_relationship_filter(self, populated):
        """Only the requested category is returned."""
        results = populated.search(params(relationship="colleagues"))

        assert [r.id for r in results] == ["close", "far"]
        assert all(r.metadata.relationship.type == "colleagues" for r in results)

    def test_recipient_filter_case_insensitive(self, populated):
        """Recipient matching ignores case."""
        results = populated.search(params(recipient_email="BOB@gmail.com"))

        assert [r.id for r in results] == ["medium"]

    def test_date_range_filter(self, populated):
        """Only examples inside the window are returned."""
        window = DateRange(start=datetime(2024, 1, 1), end=datetime(2024, 12, 31))

        results = populated.search(params(date_range=window))

        assert [r.id for r in results] == ["far"]

    def test_filters_are_conjunctive(self, populated):
        """Every filter must match."""
        window = DateRange(start=datetime(2025, 1, 1), end=datetime(2025, 12, 31))

        results = populated.search(
            params(relationship="colleagues", recipient_email="sam@acme.io", date_range=window)
        )

        assert [r.id for r in results] == ["close"]

    def test_exclude_ids(self, populated):
        """Excluded ids never come back."""
        results = populated.search(params(exclude_ids=["close"]))

        assert [r.id for r in results] == ["medium", "far"]

    def test_limit(self, populated):
        """The limit caps the result count."""
        results = populated.search(params(limit=2))

        assert [r.id for r in results] == ["close", "medium"]

    def test_non_positive_limit_rejected(self, populated):
        """A zero limit is a validation error."""
        with pytest.raises(ValidationError):
            populated.search(params().model_copy(update={"limit": 0}))

    def test_wrong_query_dimensions_rejected(self, populated):
        """Query vectors must match the index size."""
        with pytest.raises(VectorDimensionError):
            populated.search(params(query_vector=[1.0, 0.0]))

    def test_unknown_user_gets_empty_results(self, populated):
        """A user with no examples gets nothing."""
        assert populated.search(params(user_id="nobody")) == []

    def test_users_are_isolated(self, index):
        """The same id under two users stays two examples."""
        index.upsert(make_example("shared-id", user_id="user-1", vector=unit_vector(0)))
        index.upsert(make_example("shared-id", user_id="user-2", vector=unit_vector(0)))

        results = index.search(params(user_id="user-2"))

        assert len(results) == 1
        assert index.count("user-1") == 1
        assert index.count("user-2") == 1

    def test_search_carries_usage(self, populated):
        """Search results include usage stats."""
        populated.update_usage_stats([UsageUpdate(vector_id="close", user_id="user-1", was_used=True)])

        results = populated.search(params(limit=1))

        assert results[0].metadata.usage.times_used == 1

    def test_blank_user_rejected(self, index):
        """Blank user ids are a validation error."""
        with pytest.raises(ValidationError):
            index.count("  ")


@pytest.mark.unit
class TestNearDuplicates:
    def test_default_threshold(self, index):
        """Only very close vectors count as near duplicates."""
        index.upsert_batch([
            make_example("twin", vector=unit_vector(0, other=1, mix=0.1)),
            make_example("cousin", vector=unit_vector(0, other=1, mix=0.5)),
        ])

        results = index.find_near_duplicates("user-1", unit_vector(0))

        assert [r.id for r in results] == ["twin"]

    def test_custom_threshold(self, index):
        """A lower threshold widens the match."""
        index.upsert(make_example("cousin", vector=unit_vector(0, other=1, mix=0.5)))

        results = index.find_near_duplicates("user-1", unit_vector(0), threshold=0.8)

        assert [r.id for r in results] == ["cousin"]


# ============================================================================
# Test Class: Relationship views
# ============================================================================


@pytest.mark.unit
class TestRelationshipViews:
    """Browsing and counting by relationship."""

    @pytest.fixture
    def household(self, index):
        index.upsert_batch([
            make_example("a", relationship="spouse", sent_date=datetime(2025, 1, 1)),
            make_example("b", relationship="colleagues", sent_date=datetime(2025, 1, 2)),
            make_example("c", relationship="family", sent_date=datetime(2025, 1, 3)),
            make_example("d", relationship="colleagues", sent_date=datetime(2025, 1, 4)),
        ])
        return index

    def test_get_by_relationship_returns_only_that_category(self, household):
        """Category listing returns only that category."""
        examples = household.get_by_relationship("user-1", "family")

        assert [e.id for e in examples] == ["c"]

    def test_get_by_relationship_most_recent_first(self, household):
        """Newest examples come first."""
        examples = household.get_by_relationship("user-1", "colleagues")

        assert [e.id for e in examples] == ["d", "b"]

    def test_aggregate_returns_every_category(self, household):
        """The aggregate category spans all categories."""
        examples = household.get_by_relationship("user-1", AGGREGATE_RELATIONSHIP, limit=3)

        assert [e.id for e in examples] == ["d", "c", "b"]

    def test_unknown_category_is_empty(self, household):
        """A category with no examples lists nothing."""
        assert household.get_by_relationship("user-1", "acquaintances") == []

    def test_stats_sum_to_count(self, household):
        """Per-category counts add up to the total."""
        stats = household.get_relationship_stats("user-1")

        assert stats == {"spouse": 1, "colleagues": 2, "family": 1}
        assert sum(stats.values()) == household.count("user-1")

    def test_stats_for_unknown_user(self, household):
        """An unknown user has no stats."""
        assert household.get_relationship_stats("nobody") == {}


# ============================================================================
# Test Class: Usage
# ============================================================================


@pytest.mark.unit
class TestUsageStats:
    """update_usage_stats merge semantics."""

    def test_was_used_increments(self, index):
        """Every use bumps the counter, the frequency score and the last-use time."""
        index.upsert(make_example("m1"))

        applied = index.update_usage_stats([
            UsageUpdate(vector_id="m1", user_id="user-1", was_used=True),
            UsageUpdate(vector_id="m1", user_id="user-1", was_used=True),
        ])

        stored = index.get("user-1", "m1").metadata
        assert applied == 2
        assert stored.usage.times_used == 2
        assert stored.usage.last_used_at is not None
        assert stored.frequency_score == pytest.approx(3.0)

    def test_unknown_ids_ignored(self, index):
        """Updates for ids the user does not own are skipped without error."""
        index.upsert(make_example("m1"))

        applied = index.update_usage_stats([
            UsageUpdate(vector_id="ghost", user_id="user-1", was_used=True),
            UsageUpdate(vector_id="m1", user_id="user-1", was_used=True),
        ])

        assert applied == 1
        assert index.get("user-1", "m1").metadata.usage.times_used == 1

    def test_effectiveness_is_running_mean(self, index):
        """Effectiveness is the mean of every rating received."""
        index.upsert(make_example("m1"))

        index.update_usage_stats([UsageUpdate(vector_id="m1", user_id="user-1", user_rating=1.0)])
        index.update_usage_stats([UsageUpdate(vector_id="m1", user_id="user-1", user_rating=0.4)])

        usage = index.get("user-1", "m1").metadata.usage
        assert usage.effectiveness_score == pytest.approx(0.7)
        assert usage.rating_count == 2
        assert usage.user_rating == pytest.approx(0.4)

    def test_edit_distance_averaged(self, index):
        """Edit distances fold into a running average."""
        index.upsert(make_example("m1"))

        index.update_usage_stats([
            UsageUpdate(vector_id="m1", user_id="user-1", was_edited=True, edit_distance=0.2),
            UsageUpdate(vector_id="m1", user_id="user-1", was_edited=True, edit_distance=0.4),
        ])

        usage = index.get("user-1", "m1").metadata.usage
        assert usage.times_edited == 2
        assert usage.average_edit_distance == pytest.approx(0.3)

    def test_update_leaves_other_metadata_alone(self, index):
        """Only usage fields change; vector and text stay as stored."""
        original = make_example("m1", vector=unit_vector(2))
        index.upsert(original)

        index.update_usage_stats([UsageUpdate(vector_id="m1", user_id="user-1", was_used=True)])

        stored = index.get("user-1", "m1")
        assert stored.vector == pytest.approx(original.vector)
        assert stored.metadata.extracted_text == original.metadata.extracted_text

    def test_update_scoped_to_user(self, index):
        """Two users sharing an example id never see each other's usage."""
        index.upsert(make_example("m1", user_id="alice"))
        index.upsert(make_example("m1", user_id="bob"))

        index.update_usage_stats([
            UsageUpdate(vector_id="m1", user_id="alice", was_used=True, user_rating=0.2)
        ])

        bob = index.get("bob", "m1").metadata
        assert bob.usage.times_used == 0
        assert bob.usage.effectiveness_score is None
        assert bob.frequency_score == pytest.approx(1.0)
        assert index.get("alice", "m1").metadata.usage.times_used == 1
        assert index.get_effectiveness("bob", ["m1"]) == {"m1": None}
        assert index.get_effectiveness("alice", ["m1"]) == {"m1": pytest.approx(0.2)}

    def test_update_without_user_rejected(self, index):
        """A usage update must name the owner of the example."""
        with pytest.raises(PydanticValidationError):
            UsageUpdate(vector_id="m1", was_used=True)

    def test_usage_survives_reingest(self, index):
        """Re-upserting an example keeps its usage history."""
        index.upsert(make_example("m1", text="v1"))
        index.update_usage_stats([
            UsageUpdate(vector_id="m1", user_id="user-1", was_used=True, user_rating=0.9)
        ])

        index.upsert(make_example("m1", text="v2"))

        stored = index.get("user-1", "m1")
        assert stored.metadata.extracted_text == "v2"
        assert stored.metadata.usage.times_used == 1
        assert stored.metadata.usage.effectiveness_score == pytest.approx(0.9)
        assert stored.metadata.frequency_score == pytest.approx(2.0)

    def test_effectiveness_no_data(self, index):
        """Unknown and unrated ids map to None."""
        index.upsert(make_example("m1"))
        index.upsert(make_example("m2"))
        index.update_usage_stats([UsageUpdate(vector_id="m2", user_id="user-1", user_rating=0.5)])

        scores = index.get_effectiveness("user-1", ["m1", "m2", "ghost"])

        assert scores == {"m1": None, "m2": 0.5, "ghost": None}

    def test_effectiveness_requires_user(self, index):
        """Effectiveness lookups are always scoped to one user."""
        with pytest.raises(ValidationError):
            index.get_effectiveness("", ["m1"])

    def test_draft_links(self, index):
        """Draft links are deduplicated, sorted and kept per user."""
        index.record_draft_examples("user-1", "draft-1", ["m2", "m1", "m2"])
        index.record_draft_examples("user-2", "draft-1", ["m9"])

        assert index.get_draft_examples("user-1", "draft-1") == ["m1", "m2"]
        assert index.get_draft_examples("user-2", "draft-1") == ["m9"]
        assert index.get_draft_examples("user-1", "draft-2") == []


# ============================================================================
# Test Class: Deletion and health
# ============================================================================


@pytest.mark.unit
class TestDeleteUserData:
    def test_delete_removes_everything_of_user(self, index):
        """Deleting a user removes examples and draft links of that user only."""
        index.upsert_batch([make_example("m1"), make_example("m2")])
        index.upsert(make_example("m1", user_id="user-2"))
        index.record_draft_examples("user-1", "draft-1", ["m1"])

        removed = index.delete_user_data("user-1")

        assert removed == 2
        assert index.count("user-1") == 0
        assert index.search(params()) == []
        assert index.get_relationship_stats("user-1") == {}
        assert index.get_draft_examples("user-1", "draft-1") == []
        assert index.count("user-2") == 1

    def test_delete_unknown_user(self, index):
        """Deleting an unknown user removes nothing."""
        assert index.delete_user_data("nobody") == 0

    def test_reingest_after_delete_starts_fresh(self, index):
        """Usage history does not outlive a delete."""
        index.upsert(make_example("m1"))
        index.update_usage_stats([UsageUpdate(vector_id="m1", user_id="user-1", was_used=True)])
        index.delete_user_data("user-1")

        index.upsert(make_example("m1"))

        assert index.get("user-1", "m1").metadata.usage.times_used == 0


@pytest.mark.unit
class TestHealthCheck:
    def test_healthy(self, index):
        """A working database reports healthy."""
        assert index.health_check() is True

    def test_backend_failure_is_transient(self, index, monkeypatch):
        """Database errors surface as transient store errors."""
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        index.upsert(make_example("m1"))
        monkeypatch.setattr(index, "_session_factory", broken)

        with pytest.raises(TransientStoreError):
            index.count("user-1")
        assert index.health_check() is False

    def test_file_database(self, tmp_path):
        """A file-backed database works like the in-memory one."""
        engine = create_index_engine(f"sqlite:///{tmp_path / 'voice.db'}")
        index = SqlVectorIndex(engine=engine, dimensions=TEST_DIMENSIONS)

        index.upsert(make_example("m1"))

        assert index.count("user-1") == 1
