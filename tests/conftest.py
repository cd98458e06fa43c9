"""
Pytest configuration and shared fixtures.

MongoDB is replaced by mongomock, which implements the pymongo API in memory.
"""

import copy
import json
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Dict, List

import mongomock
import pytest

from bookstore.queries import mongo_executor

REPO_ROOT = Path(__file__).resolve().parent.parent
BOOKS_FILE = REPO_ROOT / "data" / "books.json"
QUERIES_DIR = REPO_ROOT / "queries"


@pytest.fixture
def sample_books() -> List[Dict[str, Any]]:
    """The seed inventory shipped in data/books.json."""
    with open(BOOKS_FILE, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def books_collection(mongo_client, sample_books):
    """plp_bookstore.books loaded with the seed inventory."""
    collection = mongo_client["plp_bookstore"]["books"]
    # insert_many adds _id to the dicts it receives
    collection.insert_many(copy.deepcopy(sample_books))
    return collection


@pytest.fixture
def patched_mongo(monkeypatch, mongo_client):
    """Route every MongoClient(...) opened by the executor to the mongomock client."""
    monkeypatch.setattr(
        mongo_executor, "MongoClient", lambda *args, **kwargs: nullcontext(mongo_client)
    )
    return mongo_client


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "bookstore_config.yaml"
    path.write_text(
        "mongo:\n"
        "  mongo_uri: \"mongodb://localhost:27017/\"\n"
        "  database: \"plp_bookstore\"\n"
        "  collection: \"books\"\n"
        "execution:\n"
        "  timeout_s: 5\n"
        "  page_size: 5\n"
        "logging:\n"
        "  level: \"WARNING\"\n",
        encoding="utf-8",
    )
    return path
