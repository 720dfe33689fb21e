from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class StorageEvent(BaseModel):
    """Trigger payload: a new object landed in the ingestion bucket."""

    model_config = ConfigDict(extra="ignore")

    bucket: str = Field(min_length=1)
    name: str = Field(min_length=1)


class HandoffPayload(BaseModel):
    """Argument passed to the downstream workflow execution."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId")
    page_count: int = Field(alias="pageCount", ge=1)

    def to_argument(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


class IngestionState(str, Enum):
    START = "START"
    DOWNLOADED = "DOWNLOADED"
    HASHED = "HASHED"
    DUPLICATE = "DUPLICATE"
    NEW = "NEW"
    RECORD_CREATED = "RECORD_CREATED"
    NORMALIZED = "NORMALIZED"
    PAGINATED = "PAGINATED"
    UPLOADED = "UPLOADED"
    HANDED_OFF = "HANDED_OFF"
    FAILED = "FAILED"


@dataclass(slots=True)
class IngestionContext:
    """Accumulates data as one source object moves through the stage."""

    event: StorageEvent
    work_dir: Path
    state: IngestionState = IngestionState.START
    source_path: Path | None = None
    normalized_path: Path | None = None
    file_hash: str = ""
    document_id: str | None = None
    page_count: int = 0
    page_paths: list[Path] | None = None
    execution_name: str | None = None


@dataclass(frozen=True)
class IngestionOutcome:
    """Terminal result of one ingestion run that did not raise."""

    state: IngestionState
    document_id: str
    page_count: int = 0
    execution_name: str | None = None


def page_object_key(document_id: str, page_number: int) -> str:
    """Object key of one page artifact; zero padding keeps lexical order == page order."""
    return f"{document_id}/{page_number:05d}.pdf"
