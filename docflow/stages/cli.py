"""Command-line entry points for the stages the workflow calls after ingestion."""

import argparse
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import google.auth.exceptions
from pydantic import BaseModel, ValidationError

from docflow.config.settings import Settings
from docflow.generation.exceptions import GenerationError
from docflow.logging.logger import Log
from docflow.main import EXIT_FAILED, EXIT_INVALID_EVENT, EXIT_OK
from docflow.stages.aggregator import build_aggregator
from docflow.stages.exceptions import StageError
from docflow.stages.models import MarkdownAggregatorRequest, SectionSplitterRequest
from docflow.stages.section_splitter import build_section_splitter
from docflow.storage.exceptions import StorageError


def _parse_args(argv: list[str] | None, prog: str, description: str) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "request",
        help="request JSON, or '-' to read it from stdin",
    )
    parser.add_argument(
        "--output",
        default="-",
        help="file to write the response JSON to (default: stdout)",
    )
    return parser.parse_args(argv)


def _run_stage(
    argv: list[str] | None,
    *,
    prog: str,
    description: str,
    request_model: type[BaseModel],
    build: Callable[[Settings], Any],
) -> int:
    args = _parse_args(argv, prog, description)
    settings = Settings()
    Log.configure(settings.log_level)

    raw_request = sys.stdin.read() if args.request == "-" else args.request
    try:
        request = request_model.model_validate_json(raw_request)
    except ValidationError as exc:
        Log.error("Invalid stage request", stage=prog, error=exc)
        return EXIT_INVALID_EVENT

    try:
        stage = build(settings)
    except (ValueError, GenerationError, google.auth.exceptions.GoogleAuthError) as exc:
        Log.error("Stage could not be configured", stage=prog, error=exc)
        return EXIT_FAILED

    try:
        response = stage.process(request)
    except (StageError, StorageError) as exc:
        Log.error("Stage failed", stage=prog, error=exc)
        return EXIT_FAILED

    if args.output == "-":
        print(response.to_json())
    else:
        Path(args.output).write_text(response.to_json() + "\n", encoding="utf-8")
    return EXIT_OK


def aggregate_main(argv: list[str] | None = None) -> int:
    """Join a document's translated page markdown into its master document."""
    return _run_stage(
        argv,
        prog="docflow-aggregate",
        description="Aggregate translated page markdown into master.md.",
        request_model=MarkdownAggregatorRequest,
        build=build_aggregator,
    )


def split_sections_main(argv: list[str] | None = None) -> int:
    """Split a cleaned master document into per-section markdown objects."""
    return _run_stage(
        argv,
        prog="docflow-split-sections",
        description="Split a cleaned markdown document into sections.",
        request_model=SectionSplitterRequest,
        build=build_section_splitter,
    )
