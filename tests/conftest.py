"""
Shared pytest fixtures for omnifilter tests.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from omnifilter.db import aconnect
from omnifilter.filters import OperatorTreeTranslator, SQLFilterTranslator

import logging
logging.basicConfig(level=logging.CRITICAL)


# Readable stand-ins for an ORM's operator symbols
OP_TOKENS = {
    name: f"Op.{name}"
    for name in (
        "eq", "ne", "gt", "gte", "lt", "lte", "in", "notIn", "like",
        "notLike", "iLike", "notILike", "regexp", "notRegexp",
        "between", "notBetween", "is", "not", "and", "or",
    )
}

USERS = [
    {"id": 1, "name": "John Smith", "age": 25, "status": "active", "deleted_at": None},
    {"id": 2, "name": "Johnny Walker", "age": 17, "status": "pending", "deleted_at": None},
    {"id": 3, "name": "Alice Jones", "age": 42, "status": "active", "deleted_at": None},
    {"id": 4, "name": "Bob Marley", "age": 70, "status": "archived", "deleted_at": "2024-01-01"},
    {"id": 5, "name": "Carol Johnson", "age": 33, "status": "deleted", "deleted_at": "2024-02-01"},
]


@pytest.fixture
def sql():
    """Provide a plain SQL translator."""
    return SQLFilterTranslator()


@pytest.fixture
def op_tokens():
    """Provide the Op.* token table."""
    return dict(OP_TOKENS)


@pytest.fixture
def tree():
    """Provide an operator tree translator with the Op.* tokens."""
    return OperatorTreeTranslator(OP_TOKENS)


@pytest_asyncio.fixture
async def users_db():
    """Provide the path of a SQLite database seeded with USERS."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "users.db")
        async with aconnect(db_path, writer=True) as conn:
            await conn.execute("""
                CREATE TABLE users (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    age INTEGER,
                    status TEXT,
                    deleted_at TEXT
                )
            """)
            await conn.executemany(
                "INSERT INTO users (id, name, age, status, deleted_at) VALUES (?, ?, ?, ?, ?)",
                [(u["id"], u["name"], u["age"], u["status"], u["deleted_at"]) for u in USERS]
            )
        yield db_path
