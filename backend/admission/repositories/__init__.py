"""
Persistence for events and join requests behind one port.
"""

from .base import JoinRequestRepository
from .memory_repository import InMemoryJoinRequestRepository
from .sqlalchemy_repository import SqlAlchemyJoinRequestRepository

__all__ = ["JoinRequestRepository", "InMemoryJoinRequestRepository", "SqlAlchemyJoinRequestRepository"]
