"""Ingestion-and-split stage: dedup, normalize, paginate, upload, hand off."""

import tempfile
from pathlib import Path

from google.cloud import storage

from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.database.models import DocumentStatus
from docflow.database.repositories.documents_repository import DocumentsRepository
from docflow.ingestion.exceptions import IngestionError, LedgerError
from docflow.ingestion.hasher import DEFAULT_CHUNK_SIZE, sha256_file
from docflow.ingestion.models import (
    HandoffPayload,
    IngestionContext,
    IngestionOutcome,
    IngestionState,
    StorageEvent,
    page_object_key,
)
from docflow.logging.logger import Log
from docflow.pdf.base import BasePdfPaginator
from docflow.pdf.factory import PaginatorFactory
from docflow.storage.cancellation import CancelScope
from docflow.storage.source_loader import SourceLoader
from docflow.storage.uploader import BoundedUploader, UploadItem
from docflow.workflow.base import BaseWorkflowClient
from docflow.workflow.factory import WorkflowClientFactory

WORK_DIR_PREFIX = "pdf-splitter-"


class IngestionController:
    """Drives one source object through the ingestion state machine.

    START -> DOWNLOADED -> HASHED -> DUPLICATE | NEW -> RECORD_CREATED
    -> NORMALIZED -> PAGINATED -> UPLOADED -> HANDED_OFF.

    Failures before the ledger record exists are raised without bookkeeping.
    From RECORD_CREATED on, every failure first marks the record FAILED.
    """

    def __init__(
        self,
        *,
        source_loader: SourceLoader,
        documents: DocumentsRepository,
        paginator: BasePdfPaginator,
        uploader: BoundedUploader,
        workflow_client: BaseWorkflowClient,
        hash_chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._source_loader = source_loader
        self._documents = documents
        self._paginator = paginator
        self._uploader = uploader
        self._workflow_client = workflow_client
        self._hash_chunk_size = hash_chunk_size

    def process(
        self,
        event: StorageEvent,
        cancel: CancelScope | None = None,
    ) -> IngestionOutcome:
        """Run the stage for one object.

        Returns:
            DUPLICATE outcome if the content was already ingested,
            HANDED_OFF outcome on success.

        Raises:
            IngestionError: on any failure; the ledger record, if one was
                created, is left in FAILED with the error text.
        """
        Log.info("Processing new object", bucket=event.bucket, object=event.name)
        with tempfile.TemporaryDirectory(prefix=WORK_DIR_PREFIX) as tmp:
            ctx = IngestionContext(event=event, work_dir=Path(tmp))
            source_path = self._download(ctx)
            self._hash(ctx, source_path)
            existing_id = self._find_duplicate(ctx)
            if existing_id is not None:
                Log.info(
                    "Duplicate file detected, skipping",
                    file_hash=ctx.file_hash,
                    existing_document_id=existing_id,
                )
                return IngestionOutcome(state=IngestionState.DUPLICATE, document_id=existing_id)

            document_id = self._create_record(ctx)
            page_paths = self._normalize_and_paginate(ctx, document_id, source_path)
            self._mark_splitting(ctx, document_id)
            self._upload_pages(ctx, document_id, page_paths, cancel)
            self._hand_off(ctx, document_id)

        Log.info("Hand-off to workflow complete", document_id=document_id)
        return IngestionOutcome(
            state=ctx.state,
            document_id=document_id,
            page_count=ctx.page_count,
            execution_name=ctx.execution_name,
        )

    def _download(self, ctx: IngestionContext) -> Path:
        ctx.source_path = ctx.work_dir / "source.pdf"
        size = self._source_loader.download(ctx.event.bucket, ctx.event.name, ctx.source_path)
        ctx.state = IngestionState.DOWNLOADED
        Log.info("Downloaded source object", object=ctx.event.name, size_bytes=size)
        return ctx.source_path

    def _hash(self, ctx: IngestionContext, source_path: Path) -> None:
        try:
            ctx.file_hash = sha256_file(source_path, self._hash_chunk_size)
        except OSError as exc:
            raise IngestionError(f"failed to calculate file hash: {exc}") from exc
        ctx.state = IngestionState.HASHED

    def _find_duplicate(self, ctx: IngestionContext) -> str | None:
        try:
            existing = self._documents.find_by_hash(ctx.file_hash)
        except Exception as exc:
            raise LedgerError(f"failed to query for duplicates: {exc}") from exc
        if existing is not None:
            ctx.state = IngestionState.DUPLICATE
            return existing.id
        ctx.state = IngestionState.NEW
        return None

    def _create_record(self, ctx: IngestionContext) -> str:
        try:
            document_id = self._documents.create(
                file_hash=ctx.file_hash,
                original_filename=ctx.event.name,
            )
        except Exception as exc:
            raise LedgerError(f"failed to create master document: {exc}") from exc
        ctx.document_id = document_id
        ctx.state = IngestionState.RECORD_CREATED
        Log.info("Created master document", document_id=document_id, file_hash=ctx.file_hash)
        return document_id

    def _normalize_and_paginate(
        self,
        ctx: IngestionContext,
        document_id: str,
        source_path: Path,
    ) -> list[Path]:
        normalized_path = ctx.work_dir / "optimized.pdf"
        try:
            self._paginator.normalize(source_path, normalized_path)
        except Exception as exc:
            raise self._fail(ctx, document_id, "failed to validate/optimize PDF", exc) from exc
        ctx.normalized_path = normalized_path
        ctx.state = IngestionState.NORMALIZED

        try:
            ctx.page_count = self._paginator.page_count(normalized_path)
        except Exception as exc:
            raise self._fail(ctx, document_id, "failed to get page count", exc) from exc

        pages_dir = ctx.work_dir / "pages"
        try:
            pages_dir.mkdir()
            page_paths = self._paginator.split(normalized_path, pages_dir)
        except Exception as exc:
            raise self._fail(ctx, document_id, "failed to split PDF", exc) from exc
        if len(page_paths) != ctx.page_count:
            mismatch = IngestionError(
                f"expected {ctx.page_count} page files, got {len(page_paths)}"
            )
            raise self._fail(ctx, document_id, "failed to split PDF", mismatch) from mismatch
        ctx.page_paths = page_paths
        ctx.state = IngestionState.PAGINATED
        Log.info("PDF optimized and split locally", document_id=document_id, page_count=ctx.page_count)
        return page_paths

    def _mark_splitting(self, ctx: IngestionContext, document_id: str) -> None:
        try:
            self._documents.update(
                document_id,
                status=DocumentStatus.SPLITTING,
                page_count=ctx.page_count,
            )
        except Exception as exc:
            raise self._fail(ctx, document_id, "failed to update status to SPLITTING", exc) from exc

    def _upload_pages(
        self,
        ctx: IngestionContext,
        document_id: str,
        page_paths: list[Path],
        cancel: CancelScope | None,
    ) -> None:
        items = [
            UploadItem(
                local_path=path,
                remote_key=page_object_key(document_id, number),
                page_number=number,
            )
            for number, path in enumerate(page_paths, start=1)
        ]
        Log.info("Starting concurrent upload of pages", document_id=document_id, page_count=len(items))
        try:
            self._uploader.upload_all(items, cancel=cancel)
        except Exception as exc:
            raise self._fail(ctx, document_id, "one or more pages failed to upload", exc) from exc
        ctx.state = IngestionState.UPLOADED
        Log.info("All pages uploaded successfully", document_id=document_id)

    def _hand_off(self, ctx: IngestionContext, document_id: str) -> None:
        payload = HandoffPayload(document_id=document_id, page_count=ctx.page_count)
        Log.info("Triggering workflow", document_id=document_id)
        try:
            ctx.execution_name = self._workflow_client.start_execution(payload.to_argument())
        except Exception as exc:
            raise self._fail(ctx, document_id, "failed to trigger workflow execution", exc) from exc
        ctx.state = IngestionState.HANDED_OFF

        try:
            self._documents.update(document_id, workflow_execution_id=ctx.execution_name)
        except Exception as exc:
            Log.warning(
                "Workflow started but execution id was not recorded",
                document_id=document_id,
                execution=ctx.execution_name,
                error=exc,
            )

    def _fail(
        self,
        ctx: IngestionContext,
        document_id: str,
        message: str,
        cause: Exception,
    ) -> IngestionError:
        """Mark the record FAILED and build the error to raise.

        A failure to record FAILED is logged as critical; the original error
        is still the one returned.
        """
        full_error = f"{message}: {cause}"
        ctx.state = IngestionState.FAILED
        Log.error(message, document_id=document_id, error=cause)
        try:
            self._documents.update(
                document_id,
                status=DocumentStatus.FAILED,
                error_details=full_error,
            )
        except Exception as update_exc:
            Log.critical(
                "Failed to update status to FAILED after a processing error",
                document_id=document_id,
                update_error=update_exc,
            )
        return IngestionError(full_error)


def build_controller(
    settings: Settings,
    database: Database,
    *,
    storage_client: storage.Client | None = None,
    workflow_client: BaseWorkflowClient | None = None,
) -> IngestionController:
    """Build an IngestionController with every client constructed once."""
    if not settings.split_pages_bucket:
        raise ValueError("split_pages_bucket must be set")
    if storage_client is None:
        storage_client = storage.Client(project=settings.gcp_project_id or None)
    if workflow_client is None:
        workflow_client = WorkflowClientFactory.create(settings)

    uploader = BoundedUploader(
        storage_client.bucket(settings.split_pages_bucket),
        concurrency=settings.upload_concurrency,
        attempt_timeout=settings.upload_attempt_timeout_seconds,
        max_attempts=settings.upload_max_attempts,
        initial_backoff=settings.upload_initial_backoff_seconds,
    )
    return IngestionController(
        source_loader=SourceLoader(storage_client),
        documents=DocumentsRepository(database, table=settings.ledger_table),
        paginator=PaginatorFactory.create(settings),
        uploader=uploader,
        workflow_client=workflow_client,
        hash_chunk_size=settings.hash_chunk_size_bytes,
    )
