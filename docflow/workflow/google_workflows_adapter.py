import json

import google.auth
import google.auth.exceptions
import google.auth.transport.requests
import httpx
from google.auth.credentials import Credentials

from docflow.workflow.base import BaseWorkflowClient
from docflow.workflow.exceptions import WorkflowTriggerError

DEFAULT_BASE_URL = "https://workflowexecutions.googleapis.com/v1"
SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class GoogleWorkflowsClient(BaseWorkflowClient):
    """Starts Cloud Workflows executions through the Workflow Executions REST API."""

    def __init__(
        self,
        *,
        project_id: str,
        location: str,
        workflow_id: str,
        timeout_seconds: int,
        base_url: str = DEFAULT_BASE_URL,
        credentials: Credentials | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not project_id:
            raise ValueError("project_id is required to trigger a workflow")
        if credentials is None:
            credentials, _ = google.auth.default(scopes=SCOPES)
        self._credentials = credentials
        self._http = http_client if http_client is not None else httpx.Client(
            timeout=timeout_seconds
        )
        self._executions_url = (
            f"{base_url.rstrip('/')}/projects/{project_id}/locations/{location}"
            f"/workflows/{workflow_id}/executions"
        )

    @property
    def executions_url(self) -> str:
        return self._executions_url

    def start_execution(self, argument: dict[str, object]) -> str:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        body = {"argument": json.dumps(argument)}
        try:
            response = self._http.post(self._executions_url, json=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise WorkflowTriggerError(
                f"workflow API error {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise WorkflowTriggerError(f"workflow API network error: {exc}") from exc

        name = response.json().get("name")
        if not isinstance(name, str) or not name:
            raise WorkflowTriggerError("workflow API response did not include an execution name")
        return name

    def _access_token(self) -> str:
        if not self._credentials.valid:
            try:
                self._credentials.refresh(google.auth.transport.requests.Request())
            except google.auth.exceptions.GoogleAuthError as exc:
                raise WorkflowTriggerError(f"failed to obtain access token: {exc}") from exc
        return str(self._credentials.token)
