from docflow.config.settings import Settings
from docflow.workflow.base import BaseWorkflowClient
from docflow.workflow.google_workflows_adapter import GoogleWorkflowsClient
from docflow.workflow.logging_client_adapter import LoggingWorkflowClient


class WorkflowClientFactory:
    """Creates the configured workflow client."""

    PROVIDERS = ("google", "logging")

    @classmethod
    def create(cls, settings: Settings) -> BaseWorkflowClient:
        provider = settings.workflow_provider.lower()
        if provider == "logging":
            return LoggingWorkflowClient(workflow_id=settings.workflow_id)
        if provider == "google":
            return GoogleWorkflowsClient(
                project_id=settings.gcp_project_id,
                location=settings.workflow_location,
                workflow_id=settings.workflow_id,
                timeout_seconds=settings.workflow_timeout_seconds,
                base_url=settings.workflow_api_base_url,
            )
        raise ValueError(
            f"Unknown workflow provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
