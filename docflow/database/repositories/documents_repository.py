import re
from typing import Any

from psycopg.rows import dict_row

from docflow.database.connection import Database
from docflow.database.exceptions import DocumentNotFoundError, InvalidStatusTransitionError
from docflow.database.models import DocumentRecord, DocumentStatus

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")

_SELECT_COLUMNS = """
    id, file_hash, original_filename, status, page_count,
    error_details, workflow_execution_id, created_at, updated_at
"""

UPDATABLE_FIELDS = frozenset(
    {"status", "page_count", "error_details", "workflow_execution_id"}
)


class DocumentsRepository:
    """Database operations for the documents ledger table.

    The duplicate check and the insert are independent statements; two
    concurrent ingestions of identical content may both insert.
    """

    def __init__(self, database: Database, table: str = "documents") -> None:
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid ledger table name: {table!r}")
        self._database = database
        self._table = table

    def create(self, *, file_hash: str, original_filename: str) -> str:
        """Insert a new record in VALIDATING status and return its ID."""
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO {self._table}
                        (file_hash, original_filename, status, created_at)
                    VALUES (%s, %s, %s, NOW())
                    RETURNING id
                    """,
                    (file_hash, original_filename, DocumentStatus.VALIDATING.value),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT did not return an id")
        return str(row[0])

    def find_by_hash(self, file_hash: str) -> DocumentRecord | None:
        """Return at most one record with the given content fingerprint."""
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_SELECT_COLUMNS}
                    FROM {self._table}
                    WHERE file_hash = %s
                    ORDER BY created_at
                    LIMIT 1
                    """,
                    (file_hash,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return self._to_record(row)

    def find_by_id(self, document_id: str) -> DocumentRecord:
        """Find a record by ID.

        Raises:
            DocumentNotFoundError: if no record with this ID exists.
        """
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_SELECT_COLUMNS}
                    FROM {self._table}
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._to_record(row)

    def update(self, document_id: str, **fields: Any) -> None:
        """Set the given fields on a record (last write wins).

        When ``status`` is among the fields the row is only updated if its
        current status may move to the new one; the check runs in the same
        statement as the write.

        Raises:
            ValueError: if a field is not updatable or no fields are given.
            DocumentNotFoundError: if no record with this ID exists.
            InvalidStatusTransitionError: if the record exists but its status
                cannot move to the requested one.
        """
        if not fields:
            raise ValueError("update() requires at least one field")
        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not updatable: {unknown}")

        names = sorted(fields)
        assignments = ", ".join(f"{name} = %s" for name in names)
        params: list[Any] = [self._to_column_value(fields[name]) for name in names]
        params.append(document_id)
        condition = "id = %s"

        target = DocumentStatus(fields["status"]) if "status" in fields else None
        if target is not None:
            condition += " AND status = ANY(%s)"
            params.append(
                [status.value for status in DocumentStatus if status.can_transition_to(target)]
            )

        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE {self._table}
                    SET {assignments}, updated_at = NOW()
                    WHERE {condition}
                    """,
                    tuple(params),
                )
                updated = cur.rowcount
            if updated > 0:
                conn.commit()
                return

        if target is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        current = self.find_by_id(document_id)
        raise InvalidStatusTransitionError(
            f"Document {document_id} cannot move from "
            f"{current.status.value} to {target.value}"
        )

    @staticmethod
    def _to_column_value(value: Any) -> Any:
        if isinstance(value, DocumentStatus):
            return value.value
        return value

    @staticmethod
    def _to_record(row: dict[str, Any]) -> DocumentRecord:
        return DocumentRecord(
            id=str(row["id"]),
            file_hash=row["file_hash"],
            original_filename=row["original_filename"],
            status=DocumentStatus(row["status"]),
            page_count=row["page_count"],
            error_details=row["error_details"],
            workflow_execution_id=row["workflow_execution_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
