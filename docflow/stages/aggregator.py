"""Concatenates translated page markdown into one master document."""

from google.api_core import exceptions as gexc
from google.cloud import storage

from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.stages.exceptions import StageError
from docflow.stages.models import (
    STATUS_SUCCESS,
    STATUS_SUCCESS_SKIPPED,
    MarkdownAggregatorRequest,
    MarkdownAggregatorResponse,
    gcs_uri,
)
from docflow.storage.artifact_writer import save_if_absent

PAGE_SEPARATOR = "\n\n---\n\n"
MASTER_OBJECT_NAME = "master.md"


class MarkdownAggregator:
    """Joins ``{documentId}/*.md`` pages in name order into ``{documentId}/master.md``."""

    def __init__(
        self,
        client: storage.Client,
        *,
        source_bucket: str,
        destination_bucket: str,
    ) -> None:
        if not source_bucket or not destination_bucket:
            raise ValueError("source_bucket and destination_bucket must be set")
        self._client = client
        self._source_bucket = source_bucket
        self._destination_bucket = destination_bucket

    def process(self, request: MarkdownAggregatorRequest) -> MarkdownAggregatorResponse:
        document_id = request.document_id
        Log.info("Starting aggregation", document_id=document_id, execution=request.execution_id)

        page_names = self._list_pages(document_id)
        if not page_names:
            Log.warning("No markdown files found to aggregate", document_id=document_id)
            raise StageError(f"no markdown files found for document ID {document_id}")

        source = self._client.bucket(self._source_bucket)
        parts: list[str] = []
        for name in page_names:
            Log.debug("Appending page", document_id=document_id, object=name)
            try:
                parts.append(source.blob(name).download_as_text(encoding="utf-8"))
            except gexc.GoogleAPIError as exc:
                raise StageError(f"failed to read {name}: {exc}") from exc

        output_name = f"{document_id}/{MASTER_OBJECT_NAME}"
        created = save_if_absent(
            self._client.bucket(self._destination_bucket),
            output_name,
            PAGE_SEPARATOR.join(parts),
        )
        Log.info(
            "Aggregation complete",
            document_id=document_id,
            pages=len(page_names),
            created=created,
        )
        return MarkdownAggregatorResponse(
            status=STATUS_SUCCESS if created else STATUS_SUCCESS_SKIPPED,
            master_gcs_uri=gcs_uri(self._destination_bucket, output_name),
        )

    def _list_pages(self, document_id: str) -> list[str]:
        prefix = f"{document_id}/"
        try:
            blobs = self._client.list_blobs(self._source_bucket, prefix=prefix)
            names = [blob.name for blob in blobs if blob.name.endswith(".md")]
        except gexc.GoogleAPIError as exc:
            raise StageError(f"failed to list markdown files: {exc}") from exc
        return sorted(names)


def build_aggregator(
    settings: Settings,
    storage_client: storage.Client | None = None,
) -> MarkdownAggregator:
    if storage_client is None:
        storage_client = storage.Client(project=settings.gcp_project_id or None)
    return MarkdownAggregator(
        storage_client,
        source_bucket=settings.translated_markdown_bucket,
        destination_bucket=settings.aggregated_markdown_bucket,
    )
