"""
Infrastructure layer - store implementations.
Keeps business logic clean from persistence details.
"""

from .memory_store import InMemoryStore, InMemoryUnitOfWork
from .sql_store import SqlUnitOfWork

__all__ = ['InMemoryStore', 'InMemoryUnitOfWork', 'SqlUnitOfWork']
