"""Exception types shared by the monitoring core."""


class FlowmonError(Exception):
    """Base class for all flowmon errors."""

    pass


class MalformedPayload(FlowmonError):
    """Remote payload is not valid JSON or lacks the required shape."""

    pass


class TransportFailure(FlowmonError):
    """Request to the workflow service failed (network error or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotInitialized(FlowmonError):
    """Operation attempted before its prerequisite exists (e.g. no run id)."""

    pass


class GraphValidationError(FlowmonError):
    """Workflow graph failed validation and was not submitted."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("Invalid workflow graph: " + "; ".join(self.errors))
