# kasir/common/exceptions.py


class NotFoundError(ValueError):
    """A referenced account, material, transaction or purchase order does not exist."""


class FetchFailedError(RuntimeError):
    """The store could not be read. Aggregations abort instead of returning partial data."""


class WriteFailedError(RuntimeError):
    """A dependent write pair failed and was rolled back as a whole."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Failed to {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
