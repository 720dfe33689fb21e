import argparse
import sys

import google.auth.exceptions
from pydantic import ValidationError

from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.ingestion.controller import build_controller
from docflow.ingestion.exceptions import IngestionError
from docflow.ingestion.models import IngestionState, StorageEvent
from docflow.logging.logger import Log

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID_EVENT = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="docflow",
        description="Ingest one PDF object: dedup, split into pages and hand off.",
    )
    parser.add_argument(
        "event",
        help="storage event JSON with 'bucket' and 'name', or '-' to read it from stdin",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point: validate event -> open ledger pool -> run the ingestion stage."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    raw_event = sys.stdin.read() if args.event == "-" else args.event
    try:
        event = StorageEvent.model_validate_json(raw_event)
    except ValidationError as exc:
        Log.error("Invalid storage event", error=exc)
        return EXIT_INVALID_EVENT

    database = Database(settings)
    try:
        controller = build_controller(settings, database)
        outcome = controller.process(event)
    except IngestionError as exc:
        Log.error("Ingestion failed", object=event.name, error=exc)
        return EXIT_FAILED
    except (ValueError, google.auth.exceptions.GoogleAuthError) as exc:
        Log.error("Ingestion stage could not be configured", error=exc)
        return EXIT_FAILED
    finally:
        database.close()

    if outcome.state is IngestionState.DUPLICATE:
        Log.info("Object already ingested", document_id=outcome.document_id)
    else:
        Log.info(
            "Object ingested",
            document_id=outcome.document_id,
            page_count=outcome.page_count,
            execution=outcome.execution_name,
        )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
