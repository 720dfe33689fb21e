from abc import ABC, abstractmethod


class BaseWorkflowClient(ABC):
    """Contract for starting an execution of the downstream workflow."""

    @abstractmethod
    def start_execution(self, argument: dict[str, object]) -> str:
        """Submit ``argument`` as the execution's input and return the execution name.

        Does not wait for the execution to finish.

        Raises:
            WorkflowTriggerError: if the execution could not be created.
        """
