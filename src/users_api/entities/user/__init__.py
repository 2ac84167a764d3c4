"""User entity module.

This module contains all User-related classes organized by responsibility:
- User, UserCreate: Domain records and the create payload
- UserTable: Database persistence model
- UserRepository: Data access layer
"""

from .entity import MAX_INTEGER, User, UserCreate
from .repository import UserRepository
from .table import UserTable

__all__ = ["MAX_INTEGER", "User", "UserCreate", "UserTable", "UserRepository"]
