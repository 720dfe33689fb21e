"""Splits cleaned markdown into one object per logical section."""

import json
import re
from pathlib import Path

from google.api_core import exceptions as gexc
from google.cloud import storage
from pydantic import ValidationError

from docflow.config.settings import Settings
from docflow.generation.client_base import BaseGenerationClient
from docflow.generation.exceptions import GenerationError, GenerationValidationError
from docflow.generation.factory import GenerationClientFactory
from docflow.generation.prompt_loader import load_json_schema, load_prompt_template
from docflow.logging.logger import Log
from docflow.stages.exceptions import StageError
from docflow.stages.models import (
    STATUS_SUCCESS,
    SectionsResult,
    SectionSplitterRequest,
    SectionSplitterResponse,
    parse_gcs_uri,
)
from docflow.storage.artifact_writer import save_if_absent
from docflow.storage.exceptions import ArtifactWriteError

MAX_TITLE_LENGTH = 100

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def sanitize_title(title: str, index: int) -> str:
    """Turn a section title into an object name component.

    ``index`` is the 1-based position used when nothing usable remains.
    """
    sanitized = _NON_ALPHANUMERIC.sub("_", title.lower()).strip("_")
    sanitized = sanitized[:MAX_TITLE_LENGTH]
    return sanitized or f"untitled_section_{index}"


class SectionSplitter:
    """Asks the generation model for sections and saves each one once."""

    def __init__(
        self,
        client: storage.Client,
        generation_client: BaseGenerationClient,
        *,
        destination_bucket: str,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        if not destination_bucket:
            raise ValueError("destination_bucket must be set")
        self._client = client
        self._generation_client = generation_client
        self._destination_bucket = destination_bucket
        self._model = model
        self._temperature = temperature
        self._system_prompt = load_prompt_template("section_splitter_system_prompt.txt")
        self._prompt_template = load_prompt_template(
            "section_splitter_prompt.txt", prompt_template_path
        )
        self._json_schema = load_json_schema("sections_schema.json", json_schema_path)
        self._json_schema_dict = json.loads(self._json_schema)

    def process(self, request: SectionSplitterRequest) -> SectionSplitterResponse:
        document_id = request.document_id
        Log.info(
            "Starting section splitting",
            document_id=document_id,
            execution=request.execution_id,
            source=request.cleaned_gcs_uri,
        )
        document = self._download(request.cleaned_gcs_uri)
        result = self._generate_sections(document)

        if not result.sections:
            Log.warning("Model returned no sections", document_id=document_id)
            return SectionSplitterResponse(status=STATUS_SUCCESS, section_count=0)

        bucket = self._client.bucket(self._destination_bucket)
        saved = 0
        for index, section in enumerate(result.sections, start=1):
            object_name = f"{document_id}/{sanitize_title(section.section, index)}.md"
            try:
                save_if_absent(bucket, object_name, section.content)
            except ArtifactWriteError as exc:
                Log.error(
                    "Failed to save section, continuing",
                    document_id=document_id,
                    section=section.section,
                    object=object_name,
                    error=exc,
                )
                continue
            saved += 1

        Log.info(
            "Section splitting complete",
            document_id=document_id,
            saved=saved,
            total=len(result.sections),
        )
        return SectionSplitterResponse(status=STATUS_SUCCESS, section_count=saved)

    def _download(self, uri: str) -> str:
        try:
            bucket, object_name = parse_gcs_uri(uri)
        except ValueError as exc:
            raise StageError(str(exc)) from exc
        try:
            return self._client.bucket(bucket).blob(object_name).download_as_text(encoding="utf-8")
        except gexc.GoogleAPIError as exc:
            raise StageError(f"failed to read {uri}: {exc}") from exc

    def _generate_sections(self, document: str) -> SectionsResult:
        prompt = self._prompt_template.format(document=document, json_schema=self._json_schema)
        try:
            raw = self._generation_client.create_chat_completion(
                model=self._model,
                temperature=self._temperature,
                system_prompt=self._system_prompt,
                user_prompt=prompt,
                json_schema=self._json_schema_dict,
            )
        except GenerationError as exc:
            raise StageError(f"failed to generate sections: {exc}") from exc
        Log.debug(f"AI raw response:\n{raw}")

        try:
            return self._parse(raw)
        except GenerationValidationError as exc:
            raise StageError(f"failed to parse sections from model: {exc}") from exc

    @staticmethod
    def _parse(raw: str) -> SectionsResult:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)
        if not cleaned:
            raise GenerationValidationError("empty response")
        try:
            return SectionsResult.model_validate_json(cleaned)
        except ValidationError as exc:
            raise GenerationValidationError(str(exc)) from exc


def build_section_splitter(
    settings: Settings,
    storage_client: storage.Client | None = None,
    generation_client: BaseGenerationClient | None = None,
) -> SectionSplitter:
    if storage_client is None:
        storage_client = storage.Client(project=settings.gcp_project_id or None)
    if generation_client is None:
        generation_client = GenerationClientFactory.create(settings)
    return SectionSplitter(
        storage_client,
        generation_client,
        destination_bucket=settings.final_sections_bucket,
        model=GenerationClientFactory.model_name(settings),
        temperature=GenerationClientFactory.temperature(settings),
    )
