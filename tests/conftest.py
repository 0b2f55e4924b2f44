"""
Shared test fixtures and configuration.
"""

import os

import pytest
import pytest_asyncio

# Set test environment variables before importing app modules
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("LOG_CONSOLE_ENABLED", "false")

from cinematch.storage import SQLStorage, create_engine_for_url  # noqa: E402


IN_MEMORY_DB = "sqlite+aiosqlite://"


@pytest_asyncio.fixture
async def storage():
    """A fresh in-memory database per test."""
    store = SQLStorage(create_engine_for_url(IN_MEMORY_DB))
    await store.init_db()
    yield store
    await store.close()
