class WorkspaceError(Exception):
    """Base class for failures reported back to the user as a status message."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkspaceError):
    """The action was refused before touching any state."""

    kind = "validation"


class NotFoundError(WorkspaceError):
    """Nothing matched; informational rather than a failure."""

    kind = "info"


class WorkspaceIOError(WorkspaceError):
    """Ingestion, export or clipboard failure. Grid state is left as it was."""

    kind = "io"
