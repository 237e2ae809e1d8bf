"""
Archivist Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest


# ---------------------------------------------------------------------------
# Environment setup — avoid touching real Redis or event files in unit tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Reset global singletons between tests."""
    import archivist.engine.config as cfg_mod
    import archivist.engine.logging as log_mod

    cfg_mod._config = None
    yield
    log_mod.shutdown_logging()
    cfg_mod._config = None

    root = logging.getLogger("archivist")
    for handler in list(root.handlers):
        if getattr(handler, "_archivist_handler", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def mock_redis():
    """Return a mock Redis client."""
    client = MagicMock()
    client.ping.return_value = True
    client.get.return_value = None
    client.set.return_value = True
    client.delete.return_value = 1
    client.scan_iter.return_value = iter([])
    return client


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


def doc(doc_id: str, kind: str, parent: str, title: str = "", created: Any = None, **extra: Any) -> Dict[str, Any]:
    """Build a raw document record the way the remote store sends it."""
    record: Dict[str, Any] = {
        "id": doc_id,
        "title": title or doc_id,
        "type": kind,
        "parentPath": parent,
    }
    if created is not None:
        record["createdAt"] = created
    record.update(extra)
    return record


def resource(res_id: str, code: str, rtype: str, **extra: Any) -> Dict[str, Any]:
    """Build a raw approved resource record."""
    record: Dict[str, Any] = {
        "id": res_id,
        "courseCode": code,
        "resourceType": rtype,
        "title": extra.pop("title", res_id),
        "status": "approved",
    }
    record.update(extra)
    return record


@pytest.fixture
def archive_records() -> List[Dict[str, Any]]:
    """
    Two categories:
        F1 (created 200)  > Folder A > Folder B > B.pdf
                          > a.docx
        F2 (created 100)  > x.pdf
    """
    return [
        doc("F1", "root", "main", title="Yönetmelikler", created=200),
        doc("F2", "root", "main", title="Raporlar", created=100),
        doc("a-file", "file", "F1", title="a.docx", created=300,
            url="https://x.r2.dev/a.docx", mimeType="application/msword", size="12 KB"),
        doc("A", "folder", "F1", title="Folder A", created=310),
        doc("B", "folder", "A", title="Folder B", created=320),
        doc("b-file", "file", "B", title="B.pdf", created=330,
            url="https://x.r2.dev/b.pdf", mimeType="application/pdf"),
        doc("x-file", "file", "F2", title="x.pdf", created=340,
            url="https://x.r2.dev/x.pdf", relatedCommissionId="c1"),
    ]


@pytest.fixture
def resource_records() -> List[Dict[str, Any]]:
    return [
        resource("r1", "CMPE150", "Midterm Soruları", courseName="Intro to Computing",
                 department="CMPE", term="2023 Güz"),
        resource("r2", "CMPE150", "Ders Notu", term="2024 Bahar"),
        resource("r3", "MATH101", "Final Soruları", courseName="Calculus I", term="2023 Güz"),
        resource("r4", "cmpe250", "Ders Notu", courseName="Data Structures"),
        resource("r5", "PHYS101", "Syllabus", courseName="Physics I", term="2022 Güz"),
    ]


@pytest.fixture
def documents(archive_records):
    from archivist.documents.models import Document

    return Document.parse_records(archive_records)


@pytest.fixture
def resources(resource_records):
    from archivist.resources.models import Resource

    return Resource.parse_records(resource_records)
