class StorageError(Exception):
    """Base class for storage subsystem errors."""


class NotFound(StorageError):
    """Logical path unknown, or its physical object is gone."""


class MalformedCiphertext(StorageError):
    pass


class WriteFailure(StorageError):
    """The filesystem rejected a write or delete."""

    def __init__(self, message: str, failures: list[str] | None = None):
        super().__init__(message)
        self.failures = failures or []


class InvalidPath(StorageError):
    pass


class RangeNotSatisfiable(StorageError):
    def __init__(self, message: str, total: int):
        super().__init__(message)
        self.total = total


class PartialArchiveFailure(StorageError):
    """One archive member could not be decrypted; recorded, never raised by export."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ExportCancelled(StorageError):
    pass
