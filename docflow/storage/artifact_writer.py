"""Create-if-absent writes shared by every single-artifact stage."""

from google.api_core import exceptions as gexc
from google.cloud import storage

from docflow.logging.logger import Log
from docflow.storage.exceptions import ArtifactWriteError

# Generation 0 matches only when no live object exists at the name.
_IF_ABSENT = 0


def save_if_absent(
    bucket: storage.Bucket,
    object_name: str,
    content: str | bytes,
    content_type: str = "text/markdown; charset=utf-8",
) -> bool:
    """Write ``content`` to ``object_name`` unless an object already exists there.

    A replayed stage may issue the same write again; in that case the stored
    object is left untouched and the call still succeeds.

    Returns:
        True if this call created the object, False if it already existed.

    Raises:
        ArtifactWriteError: on any other upload or finalize failure.
    """
    blob = bucket.blob(object_name)
    try:
        blob.upload_from_string(
            content,
            content_type=content_type,
            if_generation_match=_IF_ABSENT,
        )
    except gexc.PreconditionFailed:
        Log.info("Object already exists, skipping write", object=object_name)
        return False
    except gexc.GoogleAPIError as exc:
        Log.error(f"Failed to write object {object_name}: {exc}")
        raise ArtifactWriteError(f"failed to write {object_name}: {exc}") from exc
    return True
