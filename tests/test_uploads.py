from __future__ import annotations

import pytest

from docdesk.core.config import UploadSettings
from docdesk.core.errors import UnknownFileError, UploadRejectedError
from docdesk.orchestration.uploads import FileStore


def _store(**overrides) -> FileStore:  # noqa: ANN003
    return FileStore(UploadSettings(**overrides), clock=lambda: 1700000000000)


def test_add_assigns_name_and_timestamp_id() -> None:
    store = _store()

    uploaded = store.add("report.pdf", b"%PDF-1.4", content_type="application/pdf")

    assert uploaded.id == "report.pdf-1700000000000"
    assert uploaded.size_bytes == 8
    assert uploaded.extension == ".pdf"
    assert store.list() == [uploaded]


def test_same_name_in_same_millisecond_gets_distinct_ids() -> None:
    store = _store()

    first = store.add("a.pdf", b"one")
    second = store.add("a.pdf", b"two")

    assert first.id != second.id
    assert second.id == "a.pdf-1700000000000-1"


def test_workspace_preset_rejects_other_types() -> None:
    store = _store()

    with pytest.raises(UploadRejectedError):
        store.add("notes.txt", b"hello", workspace="operations")

    assert len(store) == 0
    assert store.add("notes.txt", b"hello", workspace="chat").name == "notes.txt"


def test_unknown_workspace_is_rejected() -> None:
    with pytest.raises(UploadRejectedError):
        _store().add("a.pdf", b"data", workspace="gallery")


def test_oversized_and_empty_files_are_rejected() -> None:
    store = _store(max_file_bytes=4)

    with pytest.raises(UploadRejectedError):
        store.add("big.pdf", b"12345")
    with pytest.raises(UploadRejectedError):
        store.add("empty.pdf", b"")

    assert len(store) == 0


def test_select_preserves_request_order() -> None:
    store = FileStore(UploadSettings(), clock=iter(range(1, 100)).__next__)
    first = store.add("1.pdf", b"1")
    second = store.add("2.pdf", b"2")
    third = store.add("3.pdf", b"3")

    assert store.select([third.id, first.id]) == [third, first]
    assert store.select() == [first, second, third]


def test_select_unknown_id_raises() -> None:
    store = _store()
    store.add("1.pdf", b"1")

    with pytest.raises(UnknownFileError):
        store.select(["missing"])


def test_remove_and_clear() -> None:
    store = FileStore(UploadSettings(), clock=iter(range(1, 100)).__next__)
    first = store.add("1.pdf", b"1")
    store.add("2.pdf", b"2")

    store.remove(first.id)
    assert [item.name for item in store.list()] == ["2.pdf"]

    assert store.clear() == 1
    assert store.list() == []
