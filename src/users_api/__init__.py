"""Users API.

A small CRUD service over a single Users resource, with JSON-Patch based
partial updates, backed by a relational store through SQLModel.
"""

__version__ = "0.1.0"
