"""Shared fixtures for the test suite."""

import pytest

from llm_visibility.storage.store import RecordStore


@pytest.fixture
def store(tmp_path):
    """Open record store backed by a temporary SQLite file."""
    with RecordStore(str(tmp_path / "visibility.db")) as record_store:
        yield record_store


@pytest.fixture
def project(store):
    """Project tracking Nike against Adidas and Salomon."""
    return store.create_project("Shoe Watch", "Nike", ["Adidas", "Salomon"])


def mention(name, rank=None, count=None):
    """Stored brandMentions entry; rank None means not mentioned."""
    mentioned = rank is not None
    if count is None:
        count = 1 if mentioned else 0
    return {
        "name": name,
        "mentioned": mentioned,
        "count": count,
        "positions": list(range(count)),
        "brandPosition": rank,
    }


def query_entry(query="q", **ranks):
    """Stored query entry with one mention per keyword argument."""
    return {
        "query": query,
        "response": "",
        "brandMentions": [mention(name, rank) for name, rank in ranks.items()],
    }
