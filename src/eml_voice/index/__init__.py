"""
Vector index: per-user (vector, metadata) store with filtered similarity search.
"""

from .base import AGGREGATE_RELATIONSHIP, VectorIndex
from .database import create_index_engine, get_db_session, get_engine
from .sql_index import SqlVectorIndex, cosine_similarities

__all__ = [
    "AGGREGATE_RELATIONSHIP",
    "VectorIndex",
    "SqlVectorIndex",
    "cosine_similarities",
    "create_index_engine",
    "get_db_session",
    "get_engine",
]
