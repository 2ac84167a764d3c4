"""Entities module, organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model and validation
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .user import User, UserCreate, UserRepository, UserTable

__all__ = [
    "User",
    "UserCreate",
    "UserTable",
    "UserRepository",
]
