"""Test configuration and fixtures for the Users API."""

from tests.fixtures import *  # noqa: F401,F403
