"""Request/response payloads exchanged between the workflow and each stage."""

from pydantic import BaseModel, ConfigDict, Field

STATUS_SUCCESS = "success"
STATUS_SUCCESS_SKIPPED = "success_skipped"


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class PageTranslatorRequest(_Payload):
    document_id: str = Field(alias="documentId", min_length=1)
    page_number: int = Field(alias="pageNumber", ge=1)
    gcs_uri: str = Field(alias="gcsUri")
    execution_id: str = Field(default="", alias="executionId")


class PageTranslatorResponse(_Payload):
    status: str
    output_gcs_uri: str = Field(alias="outputGcsUri")


class MarkdownAggregatorRequest(_Payload):
    document_id: str = Field(alias="documentId", min_length=1)
    execution_id: str = Field(default="", alias="executionId")


class MarkdownAggregatorResponse(_Payload):
    status: str
    master_gcs_uri: str = Field(alias="masterGcsUri")


class MarkdownCleanerRequest(_Payload):
    document_id: str = Field(alias="documentId", min_length=1)
    master_gcs_uri: str = Field(alias="masterGcsUri")
    execution_id: str = Field(default="", alias="executionId")


class MarkdownCleanerResponse(_Payload):
    status: str
    cleaned_gcs_uri: str = Field(alias="cleanedGcsUri")


class SectionSplitterRequest(_Payload):
    document_id: str = Field(alias="documentId", min_length=1)
    cleaned_gcs_uri: str = Field(alias="cleanedGcsUri")
    execution_id: str = Field(default="", alias="executionId")


class SectionSplitterResponse(_Payload):
    status: str
    section_count: int = Field(alias="sectionCount", ge=0)


class Section(BaseModel):
    """One section as returned by the generation model."""

    model_config = ConfigDict(extra="forbid")

    section: str
    content: str


class SectionsResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sections: list[Section]


def gcs_uri(bucket: str, object_name: str) -> str:
    return f"gs://{bucket}/{object_name}"


def parse_gcs_uri(uri: str) -> tuple[str, str]:
    """Split ``gs://bucket/object`` into its bucket and object name.

    Raises:
        ValueError: if the URI is not a gs:// URI naming an object.
    """
    prefix = "gs://"
    if not uri.startswith(prefix):
        raise ValueError(f"not a gs:// URI: {uri!r}")
    bucket, sep, object_name = uri[len(prefix):].partition("/")
    if not bucket or not sep or not object_name:
        raise ValueError(f"gs:// URI must name a bucket and an object: {uri!r}")
    return bucket, object_name
