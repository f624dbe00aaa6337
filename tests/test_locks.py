from __future__ import annotations

import threading
from pathlib import Path

from persistence.disk_store import DiskDocumentStore
from persistence.locks import DocumentLockRegistry


def test_same_document_shares_one_lock(tmp_path, monkeypatch):
    registry = DocumentLockRegistry()
    monkeypatch.chdir(tmp_path)

    absolute = registry.for_document(tmp_path / "books_data.json")
    relative = registry.for_document(Path("books_data.json"))
    dotted = registry.for_document(tmp_path / "sub" / ".." / "books_data.json")

    assert absolute is relative
    assert absolute is dotted


def test_different_documents_get_different_locks(tmp_path):
    registry = DocumentLockRegistry()

    assert registry.for_document(tmp_path / "a.json") is not registry.for_document(tmp_path / "b.json")


def test_document_lock_is_reentrant(tmp_path):
    lock = DocumentLockRegistry().for_document(tmp_path / "books_data.json")

    with lock:
        assert lock.acquire(blocking=False)
        lock.release()


def test_lock_blocks_other_threads_while_held(tmp_path):
    lock = DocumentLockRegistry().for_document(tmp_path / "books_data.json")
    acquired_elsewhere: list[bool] = []

    with lock:
        t = threading.Thread(target=lambda: acquired_elsewhere.append(lock.acquire(blocking=False)))
        t.start()
        t.join()

    assert acquired_elsewhere == [False]


def test_stores_on_the_same_file_share_the_lock(tmp_path):
    first = DiskDocumentStore(tmp_path / "books_data.json")
    second = DiskDocumentStore(tmp_path / "sub" / ".." / "books_data.json")

    assert first.lock is second.lock
