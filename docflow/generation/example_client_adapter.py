"""Example generation client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseGenerationClient and register the provider in
GenerationClientFactory.
"""

import json
from typing import ClassVar

from docflow.generation.client_base import BaseGenerationClient


class ExampleClientAdapter(BaseGenerationClient):
    """Returns a fixed, valid, empty sections result. No network calls."""

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {"sections": []}

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self._response)
