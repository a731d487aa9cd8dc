from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def settings(tmp_path: Path):
    """
    Settings rooted in a temp directory so tests never touch a real database.
    """
    from dirstore.settings import StoreSettings

    return StoreSettings(root=tmp_path / "db")


@pytest.fixture
def database(settings):
    from dirstore.database import Database

    return Database(settings)


@pytest.fixture
def students(database):
    """students/ with a junior/ sub-collection and a few documents."""
    students = database.root.collection("students")
    junior = students.collection("junior")

    alice = junior.document("alice")
    alice.set_data({"age": 12, "active": True})
    bob = students.document("bob")
    bob.set_data({"age": 17, "active": False, "name": "Bob"})
    carol = students.document("carol")
    carol.set_data({"name": "Carol"})
    for doc in (alice, bob, carol):
        doc.close()
    return students
