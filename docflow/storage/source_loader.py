from pathlib import Path

from google.api_core import exceptions as gexc
from google.cloud import storage

from docflow.ingestion.exceptions import SourceDownloadError


class SourceLoader:
    """Streams a source object from the ingestion bucket to a local file."""

    def __init__(self, client: storage.Client) -> None:
        self._client = client

    def download(self, bucket: str, name: str, destination: Path) -> int:
        """Download gs://{bucket}/{name} to ``destination`` and return its size in bytes.

        Raises:
            SourceDownloadError: if the object cannot be read or written locally.
        """
        blob = self._client.bucket(bucket).blob(name)
        try:
            blob.download_to_filename(str(destination))
        except gexc.NotFound as exc:
            raise SourceDownloadError(f"source object gs://{bucket}/{name} not found") from exc
        except (gexc.GoogleAPIError, OSError) as exc:
            raise SourceDownloadError(
                f"failed to copy gs://{bucket}/{name} to {destination}: {exc}"
            ) from exc
        return destination.stat().st_size
