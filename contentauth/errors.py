class ContentAuthError(Exception):
    """
    Base class for errors that map onto an HTTP response.

    Subclasses set the status code and the stable error code that clients
    receive in the response body.
    """

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ContentAuthError):
    status_code = 400
    error_code = "INVALID_INPUT"


class PayloadTooLargeError(InvalidInputError):
    error_code = "PAYLOAD_TOO_LARGE"


class NotFoundError(ContentAuthError):
    status_code = 404
    error_code = "NOT_FOUND"


class OwnershipConflictError(ContentAuthError):
    """Raised when a transfer names a `from` owner that is no longer current."""

    status_code = 409
    error_code = "OWNERSHIP_CONFLICT"


class StorageUnavailableError(ContentAuthError):
    status_code = 503
    error_code = "STORAGE_UNAVAILABLE"


class RegistrationFailedError(ContentAuthError):
    status_code = 503
    error_code = "REGISTRATION_FAILED"


class LedgerUnavailableError(ContentAuthError):
    status_code = 503
    error_code = "LEDGER_UNAVAILABLE"


class BlobUnavailableError(ContentAuthError):
    status_code = 502
    error_code = "BLOB_UNAVAILABLE"
