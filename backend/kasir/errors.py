# Overview: Error taxonomy shared by the data-access layer and the services.


class ValidationError(ValueError):
    """400-level input problem, raised before any read or write."""


class NotConfiguredError(Exception):
    """The data backend is missing or misconfigured."""


class StorageError(Exception):
    """A backend read or write failed; nothing was persisted."""


class RecordNotFoundError(LookupError):
    """A referenced transaction, product or cashier does not exist in the store."""


class WriteConflictError(Exception):
    """
    A stored record no longer matches what the service checked before writing
    (stock sold out, payment status already changed). Nothing was persisted.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}
