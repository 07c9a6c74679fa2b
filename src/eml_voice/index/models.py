"""
SQLAlchemy models for the vector index.

A stored example is split in two rows keyed by the same (user_id, example_id):
- style_examples: write-once core (vector, text, features, relationship)
- example_usage: the only mutable part (usage, ratings, frequency score),
  written by update_usage_stats alone

draft_example_links records which examples were offered for each (user, draft) so
feedback arriving later can be attributed.
"""

from sqlalchemy import JSON, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ExampleRecord(Base):
    """
    Immutable core of a stored example.

    `vector` holds the embedding as a JSON float array; similarity is computed
    in process over the user's filtered rows.
    """

    __tablename__ = "style_examples"

    user_id = Column(String, primary_key=True)
    example_id = Column(String, primary_key=True)  # account + message id
    vector = Column(JSON, nullable=False)
    dimensions = Column(Integer, nullable=False)

    extracted_text = Column(Text, nullable=False)
    recipient_email = Column(String, nullable=False, default="")
    subject = Column(String, nullable=False, default="")
    sent_date = Column(DateTime, nullable=False)  # naive UTC

    relationship_type = Column(String, nullable=False)
    relationship_confidence = Column(Float, nullable=False, default=1.0)
    relationship_method = Column(String, nullable=False, default="user_defined")

    features = Column(JSON, nullable=False)  # reduced EmailFeatures snapshot
    word_count = Column(Integer, nullable=False, default=0)
    pipeline_version = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        Index("idx_examples_user_relationship", "user_id", "relationship_type"),
        Index("idx_examples_user_recipient", "user_id", "recipient_email"),
        Index("idx_examples_user_sent", "user_id", "sent_date"),
    )

    def __repr__(self):
        return (
            f"<ExampleRecord(user_id={self.user_id}, example_id={self.example_id}, "
            f"relationship={self.relationship_type})>"
        )


class ExampleUsage(Base):
    """
    Mutable usage/effectiveness record of a stored example.

    Effectiveness is the running mean rating_sum / rating_count.
    """

    __tablename__ = "example_usage"

    user_id = Column(String, primary_key=True)
    example_id = Column(String, primary_key=True)
    times_used = Column(Integer, nullable=False, default=0)
    times_edited = Column(Integer, nullable=False, default=0)
    edit_samples = Column(Integer, nullable=False, default=0)
    average_edit_distance = Column(Float, nullable=True)
    rating_count = Column(Integer, nullable=False, default=0)
    rating_sum = Column(Float, nullable=False, default=0.0)
    last_rating = Column(Float, nullable=True)
    effectiveness_score = Column(Float, nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    frequency_score = Column(Float, nullable=False, default=1.0)  # +1 per use
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (Index("idx_usage_example", "example_id"),)

    def __repr__(self):
        return (
            f"<ExampleUsage(example_id={self.example_id}, times_used={self.times_used}, "
            f"effectiveness={self.effectiveness_score})>"
        )


class DraftExampleLink(Base):
    """Examples offered to the generator for one draft."""

    __tablename__ = "draft_example_links"

    user_id = Column(String, primary_key=True)
    draft_id = Column(String, primary_key=True)
    example_id = Column(String, primary_key=True)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<DraftExampleLink(draft_id={self.draft_id}, example_id={self.example_id})>"
