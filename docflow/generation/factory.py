from docflow.config.settings import Settings
from docflow.generation.client_base import BaseGenerationClient
from docflow.generation.example_client_adapter import ExampleClientAdapter
from docflow.generation.openai_client_adapter import OpenAIClientAdapter


class GenerationClientFactory:
    """Creates the configured generation client and its call parameters."""

    PROVIDERS = ("openai", "example")

    @classmethod
    def create(cls, settings: Settings) -> BaseGenerationClient:
        """Create a configured generation client from application settings."""
        provider = settings.generation_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "openai":
            return OpenAIClientAdapter(
                api_key=settings.generation_openai_api_key,
                timeout_seconds=settings.generation_openai_timeout_seconds,
                base_url=settings.generation_openai_base_url,
            )
        raise ValueError(
            f"Unknown generation provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )

    @classmethod
    def model_name(cls, settings: Settings) -> str:
        if settings.generation_provider.lower() == "example":
            return "example"
        return settings.generation_openai_model_name

    @classmethod
    def temperature(cls, settings: Settings) -> float:
        if settings.generation_provider.lower() == "example":
            return 0.0
        return settings.generation_openai_temperature
