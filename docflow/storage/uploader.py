"""Bounded-concurrency page upload with per-item retry and shared cancellation."""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from google.cloud import storage

from docflow.logging.logger import Log
from docflow.storage.cancellation import CancelScope
from docflow.storage.exceptions import UploadCancelledError, UploadError

DEFAULT_CONCURRENCY = 10
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 50.0
DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_INITIAL_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True)
class UploadItem:
    """One local page file and the object key it is uploaded to."""

    local_path: Path
    remote_key: str
    page_number: int


class BoundedUploader:
    """Uploads many local files to one bucket with a cap on parallel attempts.

    Every item retries independently with exponential backoff: with the
    defaults an item makes 4 attempts and waits 1s, 2s and 4s between them.
    There is no wait after the final attempt; the failure is reported at once.

    The first item to exhaust its attempts cancels the run: siblings waiting
    on a backoff wake up and stop, and items not yet started are skipped.
    Attempts already in flight are allowed to finish. Nothing already
    uploaded is rolled back.
    """

    def __init__(
        self,
        bucket: storage.Bucket,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        content_type: str = "application/pdf",
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._bucket = bucket
        self._concurrency = concurrency
        self._attempt_timeout = attempt_timeout
        self._max_attempts = max_attempts
        self._initial_backoff = initial_backoff
        self._content_type = content_type

    def upload_all(
        self,
        items: Sequence[UploadItem],
        cancel: CancelScope | None = None,
    ) -> None:
        """Upload every item; return only once all started tasks have finished.

        Raises:
            UploadError: the first item failure that cancelled the run.
            UploadCancelledError: if the caller's scope was cancelled.
        """
        if not items:
            return
        scope = CancelScope(parent=cancel)
        try:
            with ThreadPoolExecutor(
                max_workers=min(self._concurrency, len(items)),
                thread_name_prefix="page-upload",
            ) as executor:
                futures = [executor.submit(self._run_item, item, scope) for item in items]
                wait(futures)
        finally:
            scope.detach()

        failures = [f.exception() for f in futures if f.exception() is not None]
        if not failures:
            return
        cause = scope.cause
        if isinstance(cause, UploadError):
            raise cause
        first = failures[0]
        if isinstance(first, UploadCancelledError) or cause is not None:
            reason = cause if cause is not None else "cancelled by caller"
            raise UploadCancelledError(f"upload run cancelled: {reason}") from cause
        raise first

    def _run_item(self, item: UploadItem, scope: CancelScope) -> None:
        try:
            self._upload_with_retry(item, scope)
        except UploadError as exc:
            scope.cancel(exc)
            raise

    def _upload_with_retry(self, item: UploadItem, scope: CancelScope) -> None:
        backoff = self._initial_backoff
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            if scope.cancelled:
                raise UploadCancelledError(
                    f"upload for {item.remote_key} cancelled before attempt {attempt}"
                )
            try:
                self._upload_once(item)
                return
            except Exception as exc:  # noqa: BLE001
                last_error = exc

            if attempt == self._max_attempts:
                break
            Log.warning(
                "Upload failed, will retry",
                object=item.remote_key,
                attempt=attempt,
                max_attempts=self._max_attempts,
                backoff=backoff,
                error=last_error,
            )
            if scope.wait(backoff):
                Log.error(
                    "Cancelled during backoff, aborting retries",
                    object=item.remote_key,
                    cause=scope.cause,
                )
                raise UploadCancelledError(
                    f"upload for {item.remote_key} cancelled during backoff"
                ) from scope.cause
            backoff *= 2

        Log.error(
            "Upload failed after all retries",
            object=item.remote_key,
            error=last_error,
        )
        raise UploadError(
            f"upload for {item.remote_key} failed after "
            f"{self._max_attempts} attempts: {last_error}"
        ) from last_error

    def _upload_once(self, item: UploadItem) -> None:
        blob = self._bucket.blob(item.remote_key)
        with item.local_path.open("rb") as fh:
            blob.upload_from_file(
                fh,
                content_type=self._content_type,
                timeout=self._attempt_timeout,
                retry=None,
            )
