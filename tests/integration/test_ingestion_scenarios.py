"""End-to-end runs of the ingestion stage against in-memory storage and ledger."""

from pathlib import Path

import pymupdf
import pytest

from docflow.database.models import DocumentStatus
from docflow.ingestion.controller import IngestionController
from docflow.ingestion.exceptions import IngestionError
from docflow.ingestion.models import IngestionState, StorageEvent
from docflow.pdf.pymupdf_adapter import PyMuPdfPaginator
from docflow.storage.source_loader import SourceLoader
from docflow.storage.uploader import BoundedUploader

INGEST_BUCKET = "incoming"
PAGES_BUCKET = "pages"


@pytest.fixture()
def controller(fake_storage, documents, workflow_client) -> IngestionController:  # type: ignore[no-untyped-def]
    return IngestionController(
        source_loader=SourceLoader(fake_storage),
        documents=documents,
        paginator=PyMuPdfPaginator(),
        uploader=BoundedUploader(fake_storage.bucket(PAGES_BUCKET), initial_backoff=0),
        workflow_client=workflow_client,
    )


def _drop(fake_storage, name: str, data: bytes) -> StorageEvent:  # type: ignore[no-untyped-def]
    fake_storage.bucket(INGEST_BUCKET).objects[name] = data
    return StorageEvent(bucket=INGEST_BUCKET, name=name)


def _page_keys(fake_storage, document_id: str) -> list[str]:  # type: ignore[no-untyped-def]
    return sorted(
        key for key in fake_storage.bucket(PAGES_BUCKET).objects if key.startswith(f"{document_id}/")
    )


class TestWellFormedPdf:
    def test_splits_uploads_and_hands_off(
        self, controller, fake_storage, documents, workflow_client, three_page_pdf_bytes: bytes
    ) -> None:
        outcome = controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))

        assert outcome.state is IngestionState.HANDED_OFF
        assert len(documents.records) == 1
        record = documents.records[outcome.document_id]
        assert record.status is DocumentStatus.SPLITTING
        assert record.page_count == 3
        assert record.original_filename == "report.pdf"
        assert _page_keys(fake_storage, outcome.document_id) == [
            f"{outcome.document_id}/00001.pdf",
            f"{outcome.document_id}/00002.pdf",
            f"{outcome.document_id}/00003.pdf",
        ]
        assert workflow_client.arguments == [{"documentId": outcome.document_id, "pageCount": 3}]

    def test_page_objects_are_single_page_pdfs(
        self, controller, fake_storage, three_page_pdf_bytes: bytes
    ) -> None:
        outcome = controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))

        for key in _page_keys(fake_storage, outcome.document_id):
            data = fake_storage.bucket(PAGES_BUCKET).objects[key]
            with pymupdf.open(stream=data, filetype="pdf") as doc:
                assert doc.page_count == 1

    def test_many_pages_keep_lexical_order(
        self, controller, fake_storage, twelve_page_pdf_bytes: bytes
    ) -> None:
        outcome = controller.process(_drop(fake_storage, "long.pdf", twelve_page_pdf_bytes))

        keys = _page_keys(fake_storage, outcome.document_id)
        assert len(keys) == 12
        assert keys[9] == f"{outcome.document_id}/00010.pdf"


class TestResubmission:
    def test_same_bytes_are_not_processed_again(
        self, controller, fake_storage, documents, workflow_client, three_page_pdf_bytes: bytes
    ) -> None:
        first = controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))
        objects_before = dict(fake_storage.bucket(PAGES_BUCKET).objects)

        second = controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))

        assert second.state is IngestionState.DUPLICATE
        assert second.document_id == first.document_id
        assert len(documents.records) == 1
        assert fake_storage.bucket(PAGES_BUCKET).objects == objects_before
        assert len(workflow_client.arguments) == 1


class TestCorruptFile:
    def test_marks_record_failed(
        self, controller, fake_storage, documents, workflow_client
    ) -> None:
        event = _drop(fake_storage, "broken.pdf", b"this is not a pdf at all")

        with pytest.raises(IngestionError, match="failed to validate/optimize PDF"):
            controller.process(event)

        assert len(documents.records) == 1
        record = next(iter(documents.records.values()))
        assert record.status is DocumentStatus.FAILED
        assert record.error_details
        assert fake_storage.bucket(PAGES_BUCKET).objects == {}
        assert workflow_client.arguments == []


class TestPageUploadExhaustsRetries:
    def test_run_fails_and_page_two_is_absent(
        self, controller, fake_storage, documents, workflow_client, three_page_pdf_bytes: bytes
    ) -> None:
        pages = fake_storage.bucket(PAGES_BUCKET)
        pages.failing_suffixes.add("/00002.pdf")

        with pytest.raises(IngestionError, match="one or more pages failed to upload"):
            controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))

        record = next(iter(documents.records.values()))
        assert record.status is DocumentStatus.FAILED
        assert "00002.pdf" in record.error_details
        assert f"{record.id}/00002.pdf" not in pages.objects
        assert pages.attempts[f"{record.id}/00002.pdf"] == 4
        assert workflow_client.arguments == []


class TestWorkDirCleanup:
    def test_no_work_dirs_left_behind(
        self, controller, fake_storage, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
        three_page_pdf_bytes: bytes,
    ) -> None:
        monkeypatch.setattr("tempfile.tempdir", str(tmp_path))

        controller.process(_drop(fake_storage, "report.pdf", three_page_pdf_bytes))
        with pytest.raises(IngestionError):
            controller.process(_drop(fake_storage, "broken.pdf", b"garbage"))

        assert list(tmp_path.iterdir()) == []
