"""
Storage-specific exceptions.

Missing objects raise the built-in FileNotFoundError; everything else a
backend cannot complete raises StorageError, chained to the cause.
"""


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class ZipJobError(StorageError):
    """Raised when a remote mkzip job fails or cannot be tracked."""

    def __init__(self, persistent_id: str, message: str):
        self.persistent_id = persistent_id
        super().__init__(message)
