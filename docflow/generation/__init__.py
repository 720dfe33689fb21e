from docflow.generation.client_base import BaseGenerationClient
from docflow.generation.factory import GenerationClientFactory

__all__ = ["BaseGenerationClient", "GenerationClientFactory"]
