# tests/test_uploads.py
import asyncio

import pytest

from pdfquiz.errors import InvalidUpload, PersistenceError, UploadError
from pdfquiz.stores import LocalObjectStore, SqliteRowStore
from pdfquiz.uploads import upload_document
from conftest import FAKE_PDF


class FailingDocumentInsert(SqliteRowStore):
    def insert(self, table, rows):
        raise RuntimeError("violates row-level security policy")


class FailingUpload(LocalObjectStore):
    def upload(self, path, data, content_type):
        raise ConnectionError("storage offline")


def upload(object_store, row_store, data=FAKE_PDF, mime="application/pdf"):
    return asyncio.run(upload_document(object_store, row_store, "user-1", "Lecture 3.PDF", data, mime))


def test_upload_creates_unprocessed_document(object_store, row_store):
    document = upload(object_store, row_store)
    assert document.user_id == "user-1"
    assert document.file_name == "Lecture 3.PDF"
    assert document.file_path.startswith("user-1/")
    assert document.file_path.endswith(".pdf")
    assert document.file_size == len(FAKE_PDF)
    assert document.processed is False
    assert object_store.download(document.file_path) == FAKE_PDF
    assert row_store.select("documents", {"id": document.id})[0]["file_path"] == document.file_path


def test_rejects_non_pdf(object_store, row_store):
    with pytest.raises(InvalidUpload) as exc:
        upload(object_store, row_store, mime="image/png")
    assert exc.value.user_message == "Please select a valid PDF file."


def test_rejects_large_file(object_store, row_store):
    with pytest.raises(InvalidUpload) as exc:
        upload(object_store, row_store, data=b"%PDF" + b"0" * (10 * 1024 * 1024))
    assert "10MB" in exc.value.user_message


def test_rejects_empty_file(object_store, row_store):
    with pytest.raises(InvalidUpload):
        upload(object_store, row_store, data=b"")


def test_storage_failure(tmp_path, row_store):
    with pytest.raises(UploadError):
        upload(FailingUpload(str(tmp_path / "s")), row_store)
    assert row_store.select("documents") == []


def test_row_failure_removes_uploaded_object(tmp_path, tmp_db):
    storage = tmp_path / "storage"
    with pytest.raises(PersistenceError):
        upload(LocalObjectStore(str(storage)), FailingDocumentInsert(tmp_db))
    assert list(storage.rglob("*.pdf")) == []
