from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"
    db_pool_max_size: int = Field(default=10, ge=1)
    ledger_table: str = "documents"

    gcp_project_id: str = ""
    split_pages_bucket: str = ""
    translated_markdown_bucket: str = ""
    aggregated_markdown_bucket: str = ""
    final_sections_bucket: str = ""

    pdf_engine: str = "pymupdf"
    hash_chunk_size_bytes: int = Field(default=1024 * 1024, ge=1)

    workflow_provider: str = "google"
    workflow_id: str = "document-processing-orchestrator"
    workflow_location: str = "us-central1"
    workflow_api_base_url: str = "https://workflowexecutions.googleapis.com/v1"
    workflow_timeout_seconds: int = Field(default=30, ge=1)

    upload_concurrency: int = Field(default=10, ge=1)
    upload_attempt_timeout_seconds: float = Field(default=50.0, gt=0)
    upload_max_attempts: int = Field(default=4, ge=1)
    upload_initial_backoff_seconds: float = Field(default=1.0, ge=0)

    generation_provider: str = "openai"
    generation_openai_api_key: str = ""
    generation_openai_model_name: str = ""
    generation_openai_base_url: str | None = None
    generation_openai_timeout_seconds: int = 120
    generation_openai_temperature: float = 0.0
