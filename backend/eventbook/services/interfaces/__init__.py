"""
Service interfaces for dependency inversion.
Allows swapping storage backends without changing business logic.
"""

from .stores import EventStore, BookingStore, UnitOfWork

__all__ = ['EventStore', 'BookingStore', 'UnitOfWork']
