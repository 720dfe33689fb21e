class WorkflowTriggerError(Exception):
    """Raised when a downstream workflow execution cannot be started."""
