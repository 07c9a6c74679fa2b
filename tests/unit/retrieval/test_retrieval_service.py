"""
Unit tests for the retrieval service.

Tests coverage:
- ingest_email: features, relationship detection, near-duplicate skipping
- ingest_batch: per-item errors, in-batch duplicates, deadlines, failed writes
- search: validation, degradation to empty results, effectiveness re-ranking
- rerank_by_effectiveness
"""

import time
from datetime import datetime
from typing import List

import pytest

from eml_voice.errors import TransientStoreError, ValidationError
from eml_voice.models.examples import EmailRecord, RelationshipTag, SearchResult, UsageUpdate
from eml_voice.retrieval.service import RetrievalService, rerank_by_effectiveness

from tests.fixtures.examples import HashEmbeddingProvider, make_example, unit_vector


class SlowProvider(HashEmbeddingProvider):
    def _encode(self, texts: List[str]) -> List[List[float]]:
        time.sleep(0.3)
        return super()._encode(texts)


def email(message_id: str, text: str, recipient: str = "sam@acme.io", user_id: str = "user-1") -> EmailRecord:
    return EmailRecord(
        id=message_id,
        user_id=user_id,
        recipient_email=recipient,
        subject="Subject",
        sent_date=datetime(2025, 3, 1, 9, 0, 0),
        extracted_text=text,
    )


def result(example_id: str, score: float, effectiveness=None) -> SearchResult:
    example = make_example(example_id)
    metadata = example.metadata.model_copy(
        update={"usage": example.metadata.usage.model_copy(update={"effectiveness_score": effectiveness})}
    )
    return SearchResult(id=example_id, score=score, metadata=metadata)


# ============================================================================
# Test Class: Construction
# ============================================================================


@pytest.mark.unit
class TestConstruction:
    def test_dimension_mismatch_rejected(self, index):
        """Index and provider must agree on vector size."""
        with pytest.raises(ValidationError):
            RetrievalService(index=index, provider=HashEmbeddingProvider(dimensions=32))


# ============================================================================
# Test Class: Single ingestion
# ============================================================================


@pytest.mark.unit
class TestIngestEmail:
    """Tests for RetrievalService.ingest_email."""

    @pytest.mark.asyncio
    async def test_ingest_detects_relationships(self, service, index, sample_emails):
        """Each email is tagged with its detected relationship."""
        for record in sample_emails:
            await service.ingest_email(record)

        spouse = index.get("user-1", "acct-1:msg-1")
        colleague = index.get("user-1", "acct-1:msg-2")
        external = index.get("user-1", "acct-1:msg-3")

        assert spouse.metadata.relationship.type == "spouse"
        assert spouse.metadata.relationship.detection_method == "familiarity"
        assert colleague.metadata.relationship.type == "colleagues"
        assert external.metadata.relationship.type == "external"

    @pytest.mark.asyncio
    async def test_ingest_stores_features_and_version(self, service, sample_emails):
        """Features, word count and the provider's own model version are stored."""
        stored = await service.ingest_email(sample_emails[0])

        assert stored.metadata.features["relationship_hints"]["familiarity_level"] == "intimate"
        assert stored.metadata.word_count == 16
        assert stored.metadata.pipeline_version.endswith("-hash-bow-test-64")
        assert stored.metadata.usage.times_used == 0

    @pytest.mark.asyncio
    async def test_explicit_relationship_skips_detection(self, service, sample_emails):
        """A supplied tag is stored as given."""
        tag = RelationshipTag(type="family", confidence=0.9, detection_method="user_defined")

        stored = await service.ingest_email(sample_emails[2], relationship=tag)

        assert stored.metadata.relationship == tag

    @pytest.mark.asyncio
    async def test_overrides(self, service, sample_emails):
        """Overrides steer detection for one call."""
        stored = await service.ingest_email(
            sample_emails[2], overrides={"dr.johnson@clinic.org": "family"}
        )

        assert stored.metadata.relationship.type == "family"

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, service):
        """Blank text cannot be ingested."""
        with pytest.raises(ValidationError):
            await service.ingest_email(email("m1", "   "))

    @pytest.mark.asyncio
    async def test_near_duplicate_skipped(self, service, index):
        """A near copy of a stored example is skipped."""
        await service.ingest_email(email("m1", "Please send the signed contract today"))

        skipped = await service.ingest_email(email("m2", "Please send the signed contract today"))

        assert skipped is None
        assert index.count("user-1") == 1

    @pytest.mark.asyncio
    async def test_reingest_same_id_is_not_a_duplicate(self, service, index):
        """An example never duplicates itself."""
        await service.ingest_email(email("m1", "Please send the signed contract today"))

        again = await service.ingest_email(email("m1", "Please send the signed contract today"))

        assert again is not None
        assert index.count("user-1") == 1

    @pytest.mark.asyncio
    async def test_duplicates_kept_when_skipping_disabled(self, index, provider, detector):
        """With skipping off every email is stored."""
        service = RetrievalService(index, provider, detector=detector, skip_near_duplicates=False)

        await service.ingest_email(email("m1", "Same words here"))
        await service.ingest_email(email("m2", "Same words here"))

        assert index.count("user-1") == 2

    @pytest.mark.asyncio
    async def test_duplicates_are_per_user(self, service, index):
        """Another user's example is not a duplicate."""
        await service.ingest_email(email("m1", "Same words here", user_id="user-1"))

        stored = await service.ingest_email(email("m1", "Same words here", user_id="user-2"))

        assert stored is not None
        assert index.count("user-2") == 1


# ============================================================================
# Test Class: Batch ingestion
# ============================================================================


@pytest.mark.unit
class TestIngestBatch:
    """Tests for RetrievalService.ingest_batch."""

    @pytest.mark.asyncio
    async def test_batch_ingests_all(self, service, index, sample_emails):
        """A clean batch stores everything."""
        result = await service.ingest_batch(sample_emails, batch_size=2)

        assert result.ingested_ids == [e.id for e in sample_emails]
        assert result.errors == []
        assert result.incomplete is False
        assert index.get_relationship_stats("user-1") == {"spouse": 1, "colleagues": 1, "external": 1}

    @pytest.mark.asyncio
    async def test_bad_items_reported_by_position(self, index, detector, sample_emails):
        """Failed items are reported with their index and id."""
        service = RetrievalService(index, HashEmbeddingProvider(fail_on=["POISON"]), detector=detector)
        emails = [sample_emails[0], email("bad-1", "POISON text"), email("bad-2", ""), sample_emails[1]]

        result = await service.ingest_batch(emails)

        assert result.ingested_ids == [sample_emails[0].id, sample_emails[1].id]
        assert [(e.index, e.item_id) for e in result.errors] == [(1, "bad-1"), (2, "bad-2")]
        assert index.count("user-1") == 2

    @pytest.mark.asyncio
    async def test_duplicates_within_batch_skipped(self, service, index):
        """Repeats inside one batch are stored once."""
        emails = [
            email("m1", "Lunch on Thursday works for me"),
            email("m2", "Lunch on Thursday works for me"),
            email("m3", "The invoice was paid"),
        ]

        result = await service.ingest_batch(emails, batch_size=10)

        assert result.ingested_ids == ["m1", "m3"]
        assert result.skipped_duplicates == ["m2"]

    @pytest.mark.asyncio
    async def test_duplicates_of_stored_examples_skipped(self, service):
        """Batch items matching stored examples are skipped."""
        await service.ingest_email(email("m1", "Lunch on Thursday works for me"))

        result = await service.ingest_batch([email("m2", "Lunch on Thursday works for me")])

        assert result.skipped_duplicates == ["m2"]
        assert result.ingested_ids == []

    @pytest.mark.asyncio
    async def test_deadline_marks_incomplete(self, index, detector):
        """A deadline cuts the batch short and flags it."""
        service = RetrievalService(index, SlowProvider(max_concurrency=1), detector=detector)
        emails = [email(f"m{i}", f"text number {i}") for i in range(3)]

        result = await service.ingest_batch(emails, deadline_seconds=0.05)

        assert result.incomplete is True
        assert len(result.ingested_ids) < 3

    @pytest.mark.asyncio
    async def test_failed_write_reports_chunk(self, service, index, monkeypatch):
        """A failed write reports every item of its chunk."""
        def broken(examples):
            raise TransientStoreError("disk full")

        monkeypatch.setattr(index, "upsert_batch", broken)
        emails = [email("m1", "first message"), email("m2", "second message")]

        result = await service.ingest_batch(emails)

        assert result.ingested_ids == []
        assert [e.index for e in result.errors] == [0, 1]
        assert all("disk full" in e.reason for e in result.errors)

    @pytest.mark.asyncio
    async def test_empty_batch(self, service):
        """An empty batch is complete and stores nothing."""
        result = await service.ingest_batch([])

        assert result.ingested_ids == []
        assert result.incomplete is False


# ============================================================================
# Test Class: Search
# ============================================================================


@pytest.mark.unit
class TestSearch:
    """Tests for RetrievalService.search."""

    @pytest.mark.asyncio
    async def test_query_text_finds_closest(self, service, sample_emails):
        """Query text is embedded and matched."""
        await service.ingest_batch(sample_emails)

        results = await service.search("user-1", query_text="Could you review the quarterly report by Friday?")

        assert results[0].id == "acct-1:msg-2"

    @pytest.mark.asyncio
    async def test_relationship_filter(self, service, sample_emails):
        """Search can be limited to one category."""
        await service.ingest_batch(sample_emails)

        results = await service.search(
            "user-1", query_text=sample_emails[0].extracted_text, relationship="colleagues", score_threshold=-1.0
        )

        assert [r.id for r in results] == ["acct-1:msg-2"]

    @pytest.mark.asyncio
    async def test_query_vector(self, service, index):
        """A ready vector skips embedding."""
        index.upsert(make_example("m1", vector=unit_vector(2)))

        results = await service.search("user-1", query_vector=unit_vector(2))

        assert [r.id for r in results] == ["m1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"user_id": "", "query_text": "hello"},
            {"user_id": "user-1"},
            {"user_id": "user-1", "query_text": "   "},
            {"user_id": "user-1", "query_text": "hello", "limit": 0},
        ],
    )
    async def test_invalid_requests(self, service, kwargs):
        """Bad search arguments are validation errors."""
        with pytest.raises(ValidationError):
            await service.search(**kwargs)

    @pytest.mark.asyncio
    async def test_failing_index_degrades_to_empty(self, service, index, monkeypatch):
        """Search returns nothing after retries run out."""
        calls = []

        def broken(params):
            calls.append(params)
            raise TransientStoreError("connection refused")

        monkeypatch.setattr(index, "search", broken)

        results = await service.search("user-1", query_text="hello there")

        assert results == []
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_effectiveness_reorders(self, index, provider, detector):
        """Well-rated examples can outrank closer ones."""
        service = RetrievalService(index, provider, detector=detector, effectiveness_weight=0.5)
        index.upsert_batch([
            make_example("similar", vector=unit_vector(0, other=1, mix=0.3)),
            make_example("effective", vector=unit_vector(0, other=1, mix=0.6)),
        ])
        index.update_usage_stats([
            UsageUpdate(vector_id="similar", user_id="user-1", user_rating=0.0),
            UsageUpdate(vector_id="effective", user_id="user-1", user_rating=1.0),
        ])

        results = await service.search("user-1", query_vector=unit_vector(0))

        assert [r.id for r in results] == ["effective", "similar"]
        assert results[0].rank_score > results[1].rank_score

    @pytest.mark.asyncio
    async def test_service_views(self, service, sample_emails):
        """Count, stats and category listing pass through to the index."""
        await service.ingest_batch(sample_emails)

        assert await service.count("user-1") == 3
        assert await service.get_relationship_stats("user-1") == {
            "spouse": 1, "colleagues": 1, "external": 1,
        }
        spouse = await service.get_by_relationship("user-1", "spouse")
        assert [e.id for e in spouse] == ["acct-1:msg-1"]
        duplicates = await service.find_near_duplicates("user-1", text=sample_emails[1].extracted_text)
        assert [d.id for d in duplicates] == ["acct-1:msg-2"]
        assert await service.health_check() is True

        assert await service.delete_user_data("user-1") == 3
        assert await service.count("user-1") == 0


@pytest.mark.unit
class TestRerank:
    def test_weight_zero_keeps_order(self):
        """Zero weight leaves similarity order alone."""
        results = [result("a", 0.9), result("b", 0.8, effectiveness=1.0)]

        ranked = rerank_by_effectiveness(results, 0.0)

        assert [r.id for r in ranked] == ["a", "b"]
        assert ranked[0].rank_score is None

    def test_effective_example_moves_up(self):
        """Effectiveness blends into the rank score."""
        results = [result("a", 0.9), result("b", 0.85, effectiveness=1.0)]

        ranked = rerank_by_effectiveness(results, 0.5)

        assert [r.id for r in ranked] == ["b", "a"]
        assert ranked[0].rank_score == pytest.approx(0.925)
        assert ranked[1].rank_score == pytest.approx(0.7)

    def test_unrated_counts_as_neutral(self):
        """Unrated examples count as 0.5."""
        ranked = rerank_by_effectiveness([result("a", 0.6)], 0.1)

        assert ranked[0].rank_score == pytest.approx(0.9 * 0.6 + 0.1 * 0.5)
