"""Graph database access for Chronicle.

This module contains:
- Neo4j driver lifecycle and query execution
- Schema bootstrap (constraints and indexes)
- Store error hierarchy
"""

from chronicle.db.errors import (
    GraphUnavailableError,
    NotFoundError,
    QueryError,
    StoreError,
    ValidationError,
)
from chronicle.db.graph import GraphStore

__all__ = [
    "GraphStore",
    "StoreError",
    "GraphUnavailableError",
    "QueryError",
    "NotFoundError",
    "ValidationError",
]
