from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc

from docflow.storage.artifact_writer import save_if_absent
from docflow.storage.exceptions import ArtifactWriteError


class TestSaveIfAbsent:
    def test_creates_missing_object(self, fake_storage) -> None:
        bucket = fake_storage.bucket("sections")

        created = save_if_absent(bucket, "doc-1/intro.md", "# Intro")

        assert created is True
        assert bucket.objects["doc-1/intro.md"] == b"# Intro"
        assert bucket.content_types["doc-1/intro.md"] == "text/markdown; charset=utf-8"

    def test_existing_object_is_left_untouched(self, fake_storage) -> None:
        bucket = fake_storage.bucket("sections")
        bucket.objects["doc-1/intro.md"] = b"original"

        created = save_if_absent(bucket, "doc-1/intro.md", "replacement")

        assert created is False
        assert bucket.objects["doc-1/intro.md"] == b"original"

    def test_second_call_reports_existing(self, fake_storage) -> None:
        bucket = fake_storage.bucket("sections")

        assert save_if_absent(bucket, "doc-1/master.md", "v1") is True
        assert save_if_absent(bucket, "doc-1/master.md", "v2") is False
        assert bucket.objects["doc-1/master.md"] == b"v1"

    def test_requests_create_only_precondition(self) -> None:
        bucket = MagicMock()

        save_if_absent(bucket, "doc-1/a.md", "body", content_type="text/plain")

        bucket.blob.assert_called_once_with("doc-1/a.md")
        bucket.blob.return_value.upload_from_string.assert_called_once_with(
            "body",
            content_type="text/plain",
            if_generation_match=0,
        )

    def test_other_failures_raise_write_error(self) -> None:
        bucket = MagicMock()
        bucket.blob.return_value.upload_from_string.side_effect = gexc.ServiceUnavailable(
            "backend down"
        )

        with pytest.raises(ArtifactWriteError, match="failed to write doc-1/a.md") as exc_info:
            save_if_absent(bucket, "doc-1/a.md", "body")
        assert isinstance(exc_info.value.__cause__, gexc.ServiceUnavailable)
