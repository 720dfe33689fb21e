import io
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from google.api_core import exceptions as gexc
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docflow.database.exceptions import DocumentNotFoundError, InvalidStatusTransitionError
from docflow.database.models import DocumentRecord, DocumentStatus


def _pdf_with_pages(count: int) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for number in range(1, count + 1):
        c.drawString(72, 720, f"Page {number} content")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf_with_pages(2)


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    return _pdf_with_pages(3)


@pytest.fixture()
def twelve_page_pdf_bytes() -> bytes:
    return _pdf_with_pages(12)


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str) -> None:
        self.bucket = bucket
        self.name = name

    def upload_from_file(self, fh: Any, content_type: str, timeout: float, retry: Any) -> None:
        self.bucket.upload_kwargs.append({"timeout": timeout, "retry": retry})
        self.bucket.run_upload(self.name, lambda: fh.read(), content_type)

    def upload_from_string(
        self,
        content: str | bytes,
        content_type: str,
        if_generation_match: int | None = None,
    ) -> None:
        data = content.encode("utf-8") if isinstance(content, str) else content
        if if_generation_match == 0 and self.name in self.bucket.objects:
            raise gexc.PreconditionFailed(f"object {self.name} already exists")
        self.bucket.run_upload(self.name, lambda: data, content_type)

    def download_to_filename(self, filename: str) -> None:
        Path(filename).write_bytes(self._data())

    def download_as_text(self, encoding: str = "utf-8") -> str:
        return self._data().decode(encoding)

    def _data(self) -> bytes:
        if self.name not in self.bucket.objects:
            raise gexc.NotFound(f"object {self.name} not found")
        return self.bucket.objects[self.name]


class FakeBucket:
    """In-memory bucket with per-object failure injection and in-flight tracking."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.attempts: dict[str, int] = {}
        self.failures: dict[str, int] = {}
        self.failing_suffixes: set[str] = set()
        self.upload_delay = 0.0
        self.delays: dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.upload_kwargs: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)

    def fail(self, name: str, times: int = -1) -> None:
        """Make the next ``times`` uploads of ``name`` fail; -1 fails forever."""
        self.failures[name] = times

    def run_upload(self, name: str, read: Callable[[], bytes], content_type: str) -> None:
        with self._lock:
            self.attempts[name] = self.attempts.get(name, 0) + 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            remaining = self.failures.get(name, 0)
            should_fail = remaining != 0 or any(name.endswith(s) for s in self.failing_suffixes)
            if remaining > 0:
                self.failures[name] = remaining - 1
        try:
            delay = self.delays.get(name, self.upload_delay)
            if delay:
                time.sleep(delay)
            if should_fail:
                raise gexc.ServiceUnavailable(f"injected failure for {name}")
            data = read()
            with self._lock:
                self.objects[name] = data
                self.content_types[name] = content_type
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeStorageClient:
    def __init__(self) -> None:
        self._buckets: dict[str, FakeBucket] = {}

    def bucket(self, name: str) -> FakeBucket:
        if name not in self._buckets:
            self._buckets[name] = FakeBucket(name)
        return self._buckets[name]

    def list_blobs(self, bucket_name: str, prefix: str = "") -> list[FakeBlob]:
        bucket = self.bucket(bucket_name)
        return [bucket.blob(name) for name in bucket.objects if name.startswith(prefix)]


class InMemoryDocuments:
    """Ledger double with the DocumentsRepository surface."""

    def __init__(self) -> None:
        self.records: dict[str, DocumentRecord] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_create: Exception | None = None
        self.fail_find: Exception | None = None
        self.fail_update_when: Callable[[dict[str, Any]], Exception | None] = lambda fields: None

    def create(self, *, file_hash: str, original_filename: str) -> str:
        if self.fail_create is not None:
            raise self.fail_create
        document_id = str(uuid.uuid4())
        self.records[document_id] = DocumentRecord(
            id=document_id,
            file_hash=file_hash,
            original_filename=original_filename,
            status=DocumentStatus.VALIDATING,
        )
        return document_id

    def find_by_hash(self, file_hash: str) -> DocumentRecord | None:
        if self.fail_find is not None:
            raise self.fail_find
        for record in self.records.values():
            if record.file_hash == file_hash:
                return record
        return None

    def find_by_id(self, document_id: str) -> DocumentRecord:
        if document_id not in self.records:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self.records[document_id]

    def update(self, document_id: str, **fields: Any) -> None:
        self.updates.append((document_id, fields))
        error = self.fail_update_when(fields)
        if error is not None:
            raise error
        record = self.find_by_id(document_id)
        if "status" in fields:
            target = DocumentStatus(fields["status"])
            if not record.status.can_transition_to(target):
                raise InvalidStatusTransitionError(
                    f"Document {document_id} cannot move from "
                    f"{record.status.value} to {target.value}"
                )
        for name, value in fields.items():
            setattr(record, name, value)


class RecordingWorkflowClient:
    def __init__(self, error: Exception | None = None) -> None:
        self.arguments: list[dict[str, object]] = []
        self.error = error

    def start_execution(self, argument: dict[str, object]) -> str:
        self.arguments.append(argument)
        if self.error is not None:
            raise self.error
        return f"executions/{len(self.arguments)}"


@pytest.fixture()
def fake_storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture()
def documents() -> InMemoryDocuments:
    return InMemoryDocuments()


@pytest.fixture()
def workflow_client() -> RecordingWorkflowClient:
    return RecordingWorkflowClient()
