from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from pathlib import Path

import pytest
from pydantic import BaseModel

from dirstore.database import Database
from dirstore.document import Document
from dirstore.errors import Corrupt, DocumentTooLarge, InvalidDatatype, IOFailure, NotFound, TypeMismatch
from dirstore.json_codec import JsonSerializer
from dirstore.settings import StoreSettings


@pytest.fixture
def col(database):
    return database.root.collection("students")


def _reload(doc: Document) -> Document:
    doc.flush()
    return Document(doc.path, doc._ctx)


def test_put_is_visible_immediately_and_persisted(col):
    doc = col.document("alice")
    doc.put("age", 12)

    assert doc.get("age") == 12
    assert _reload(doc).get("age") == 12


def test_set_data_round_trip(col):
    fields = {"name": "Alice", "age": 12, "height": 1.45, "active": True, "tags": ["a", 1, False]}
    doc = col.document("alice")
    doc.set_data(fields)

    assert _reload(doc).data == fields


def test_set_data_replaces_rather_than_merges(col):
    doc = col.document("alice")
    doc.set_data({"a": 1, "b": 2})
    doc.set_data({"c": 3})

    assert doc.data == {"c": 3}
    assert _reload(doc).data == {"c": 3}


def test_writes_persist_in_order(col):
    doc = col.document("counter")
    for i in range(50):
        doc.put("n", i)

    assert _reload(doc).get("n") == 49


def test_invalid_values_leave_state_untouched(col):
    doc = col.document("alice")
    doc.set_data({"age": 12})
    doc.flush()

    with pytest.raises(InvalidDatatype):
        doc.put("address", {"city": "Rome"})
    with pytest.raises(InvalidDatatype):
        doc.set_data({"age": 13, "nested": [[1]]})
    with pytest.raises(InvalidDatatype):
        doc.add_item("tags", ["x"])
    with pytest.raises(InvalidDatatype):
        doc.put("", 1)

    assert doc.data == {"age": 12}
    assert _reload(doc).data == {"age": 12}


def test_typed_getters(col):
    doc = col.document("alice")
    doc.set_data({"name": "Alice", "age": 12, "active": True, "tags": ["x"]})

    assert doc.get_string("name") == "Alice"
    assert doc.get_number("age") == 12
    assert doc.get_boolean("active") is True
    assert doc.get_list("tags") == ["x"]
    assert doc.get_string("missing", "n/a") == "n/a"
    assert doc.get("missing") is None


@pytest.mark.parametrize(
    "getter,field",
    [("get_string", "age"), ("get_number", "active"), ("get_boolean", "age"), ("get_list", "name")],
)
def test_typed_getter_mismatch(col, getter, field):
    doc = col.document("alice")
    doc.set_data({"name": "Alice", "age": 12, "active": True})

    with pytest.raises(TypeMismatch):
        getattr(doc, getter)(field)


def test_returned_lists_are_detached(col):
    doc = col.document("alice")
    doc.put("tags", ["a"])

    doc.get_list("tags").append("b")
    doc.data["tags"].append("c")

    assert doc.get_list("tags") == ["a"]


def test_add_item_creates_and_appends(col):
    doc = col.document("alice")
    doc.add_item("tags", "new")
    doc.add_item("tags", 2)

    assert doc.get_list("tags") == ["new", 2]
    assert _reload(doc).get_list("tags") == ["new", 2]


def test_add_item_on_non_list_field(col):
    doc = col.document("alice")
    doc.put("age", 12)

    with pytest.raises(TypeMismatch):
        doc.add_item("age", 1)


def test_remove_item_first_occurrence(col):
    doc = col.document("alice")
    doc.put("tags", ["a", "b", "a"])

    assert doc.remove_item("tags", "a") is True
    assert doc.get_list("tags") == ["b", "a"]
    assert _reload(doc).get_list("tags") == ["b", "a"]


def test_remove_item_absent_is_noop(col):
    doc = col.document("alice")
    doc.put("flags", [1, True])

    assert doc.remove_item("flags", "zzz") is False
    assert doc.remove_item("nothing", "a") is False
    # kind-aware: True does not match the number 1
    assert doc.remove_item("flags", True) is True
    assert doc.get_list("flags") == [1]


def test_remove_field(col):
    doc = col.document("alice")
    doc.set_data({"a": 1, "b": 2})

    assert doc.remove_field("a") is True
    assert doc.remove_field("a") is False
    assert _reload(doc).data == {"b": 2}


def test_size_cap_deletes_document(tmp_path: Path):
    db = Database(StoreSettings(root=tmp_path / "db", max_document_bytes=64))
    col = db.root.collection("students")
    doc = col.document("alice")
    doc.put("name", "Alice")
    doc.flush()

    with pytest.raises(DocumentTooLarge) as info:
        doc.put("bio", "x" * 100)

    assert info.value.limit == 64
    assert info.value.size > 64
    assert not doc.path.exists()
    assert "alice" not in col.list_documents()
    with pytest.raises(NotFound):
        doc.get("name")
    # a fresh handle starts from an empty document
    assert col.document("alice").data == {}


def test_size_cap_applies_to_set_data(tmp_path: Path):
    db = Database(StoreSettings(root=tmp_path / "db", max_document_bytes=32))
    doc = db.root.document("big")

    with pytest.raises(DocumentTooLarge):
        doc.set_data({"payload": "y" * 64})
    assert not doc.path.exists()


def test_delete_then_operations_fail(col):
    doc = col.document("alice")
    doc.put("age", 12)

    assert doc.delete() is True
    assert not doc.path.exists()
    assert doc.deleted

    for op in (
        lambda: doc.get("age"),
        lambda: doc.get_number("age"),
        lambda: doc.put("age", 13),
        lambda: doc.set_data({}),
        lambda: doc.add_item("tags", "x"),
        lambda: doc.remove_item("tags", "x"),
        lambda: doc.data,
    ):
        with pytest.raises(NotFound):
            op()

    assert doc.delete() is False


def test_delete_drains_queued_writes(col):
    doc = col.document("alice")
    for i in range(20):
        doc.put("n", i)

    assert doc.delete() is True
    assert not doc.path.exists()


def test_corrupt_file_is_fatal(col):
    (col.path / "broken.doc").write_text("{not json", encoding="utf-8")
    with pytest.raises(Corrupt):
        col.document("broken")

    (col.path / "array.doc").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(Corrupt):
        col.document("array")

    (col.path / "nested.doc").write_text('{"a": {"b": 1}}', encoding="utf-8")
    with pytest.raises(Corrupt):
        col.document("nested")


def test_missing_file_is_not_found(col):
    with pytest.raises(NotFound):
        Document(col.path / "ghost.doc", col.context)


def test_write_failure_is_retained_and_raised_on_flush(col):
    doc = col.document("alice")
    doc.flush()
    # removing the parent directory makes the queued write fail
    col.path.joinpath("alice.doc").unlink()
    col.path.rmdir()

    doc.put("age", 12)

    with pytest.raises(IOFailure):
        doc.flush()
    assert isinstance(doc.last_write_error, IOFailure)
    # reported once per flush
    doc.flush()
    assert doc.get("age") == 12


def test_two_handles_last_write_wins(col):
    first = col.document("shared")
    second = col.document("shared")

    first.put("who", "first")
    first.flush()
    second.put("who", "second")
    second.flush()

    assert first.get("who") == "first"
    assert col.document("shared").get("who") == "second"


def test_context_manager_drains(col):
    with col.document("alice") as doc:
        doc.put("age", 12)
    assert doc.pending_writes == 0
    assert col.document("alice").get("age") == 12


def test_str_is_serialized_map(col):
    doc = col.document("alice")
    doc.put("age", 12)
    assert str(doc) == '{"age": 12}'


class Student(BaseModel):
    name: str
    age: int
    tags: list[str] = []


@dataclass
class Badge:
    label: str


def test_object_mapping_round_trip(col):
    doc = col.document("alice")
    doc.set_object(Student(name="Alice", age=12, tags=["x"]))

    assert doc.data == {"name": "Alice", "age": 12, "tags": ["x"]}
    assert _reload(doc).get_as_object(Student) == Student(name="Alice", age=12, tags=["x"])


def test_object_mapping_dataclass(col):
    doc = col.document("badge")
    doc.set_object(Badge(label="gold"))
    assert doc.get_as_object(Badge) == Badge(label="gold")


def test_object_mapping_mismatch(col):
    doc = col.document("alice")
    doc.put("name", "Alice")

    with pytest.raises(TypeMismatch):
        doc.get_as_object(Student)


def test_concurrent_puts_on_one_handle_all_survive(col):
    previous = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    try:
        doc = col.document("busy")
        threads_count, per_thread = 8, 200

        def writer(t: int) -> None:
            for i in range(per_thread):
                doc.put(f"t{t}_{i}", i)

        threads = [threading.Thread(target=writer, args=(t,)) for t in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    finally:
        sys.setswitchinterval(previous)

    assert len(doc) == threads_count * per_thread
    assert len(_reload(doc)) == threads_count * per_thread


def test_concurrent_add_item_keeps_every_element(col):
    doc = col.document("tags")

    def writer(t: int) -> None:
        for i in range(50):
            doc.add_item("tags", f"{t}-{i}")

    threads = [threading.Thread(target=writer, args=(t,)) for t in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(doc.get_list("tags")) == 200
    assert sorted(_reload(doc).get_list("tags")) == sorted(doc.get_list("tags"))


def test_size_cap_when_delete_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db = Database(StoreSettings(root=tmp_path / "db", max_document_bytes=32))
    doc = db.root.document("stuck")
    doc.put("a", 1)
    doc.flush()

    def refuse(self, missing_ok=False):
        raise PermissionError("read-only")

    monkeypatch.setattr(Path, "unlink", refuse)

    with pytest.raises(DocumentTooLarge, match="still on disk"):
        doc.put("payload", "z" * 64)

    assert doc.deleted is False
    assert doc.path.exists()
    assert doc.data == {"a": 1}


class _ExplodingSerializer(JsonSerializer):
    def decode(self, raw: bytes) -> dict:
        raise ValueError("cannot parse")


def test_serializer_value_error_is_corrupt(tmp_path: Path):
    db = Database(StoreSettings(root=tmp_path / "db"), serializer=_ExplodingSerializer())
    (tmp_path / "db" / "odd.doc").write_text("{}", encoding="utf-8")

    with pytest.raises(Corrupt):
        db.root.document("odd")


def test_iterating_a_document_yields_field_names(col):
    doc = col.document("alice")
    doc.set_data({"a": 1, "b": 2})

    assert list(doc) == ["a", "b"]
    assert doc.keys() == ["a", "b"]
    assert "a" in doc
