from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class DocumentStatus(str, Enum):
    """Lifecycle of a ledger record. Only moves forward; FAILED is terminal."""

    VALIDATING = "VALIDATING"
    SPLITTING = "SPLITTING"
    SPLITTING_COMPLETE = "SPLITTING_COMPLETE"
    FAILED = "FAILED"

    def can_transition_to(self, target: "DocumentStatus") -> bool:
        if self is DocumentStatus.FAILED:
            return False
        if target is DocumentStatus.FAILED:
            return True
        return _ORDER.index(target) > _ORDER.index(self)


_ORDER = [
    DocumentStatus.VALIDATING,
    DocumentStatus.SPLITTING,
    DocumentStatus.SPLITTING_COMPLETE,
]


@dataclass
class DocumentRecord:
    """Represents a row from the documents ledger table."""

    id: str
    file_hash: str
    original_filename: str
    status: DocumentStatus
    page_count: int | None = None
    error_details: str | None = None
    workflow_execution_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def as_ledger_fields(self) -> dict[str, object]:
        """Render the record with ledger field names, omitting unset fields."""
        fields: dict[str, object | None] = {
            "fileHash": self.file_hash,
            "originalFilename": self.original_filename,
            "status": self.status.value,
            "pageCount": self.page_count,
            "errorDetails": self.error_details,
            "workflowExecutionId": self.workflow_execution_id,
            "createdAt": self.created_at,
        }
        return {key: value for key, value in fields.items() if value is not None}
