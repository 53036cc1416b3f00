class AthenaExplorerError(Exception):
    """Base exception for athena_explorer."""


class ConfigurationError(AthenaExplorerError):
    pass


class ExecutionFailed(AthenaExplorerError):
    """Athena reported FAILED. ``reason`` is the service text, unmodified."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class ExecutionCancelled(AthenaExplorerError):
    def __init__(self, reason: str = ""):
        super().__init__(reason or "Query execution was cancelled")
        self.reason = reason


class ExecutionTimedOut(AthenaExplorerError):
    pass


class ResultSchemaChanged(AthenaExplorerError):
    pass


class ResultUnavailable(AthenaExplorerError):
    pass


class CatalogUnavailable(AthenaExplorerError):
    """A catalog listing/describe call failed. The message is the cause's own text."""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause
