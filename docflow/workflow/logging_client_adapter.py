"""Workflow client for local development.

Makes no network calls; the payload is only logged.
"""

import uuid

from docflow.logging.logger import Log
from docflow.workflow.base import BaseWorkflowClient


class LoggingWorkflowClient(BaseWorkflowClient):
    """Logs the execution argument and returns a synthetic execution name."""

    def __init__(self, workflow_id: str = "local") -> None:
        self._workflow_id = workflow_id

    def start_execution(self, argument: dict[str, object]) -> str:
        name = f"workflows/{self._workflow_id}/executions/{uuid.uuid4()}"
        Log.info("Workflow execution not submitted (logging provider)", execution=name, **argument)
        return name
