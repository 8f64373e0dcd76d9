"""Exception types shared by the migration modules."""


class MigrationError(Exception):
    """Base class for every error raised by sp2ytm."""


class NetworkError(MigrationError):
    """Transport failure or an HTTP error status from a remote API."""

    def __init__(self, message, status_code=None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthFlowError(MigrationError):
    """The OAuth authorization attempt failed and must be restarted."""


class ListenerBindFailed(AuthFlowError):
    pass


class CallbackError(AuthFlowError):
    pass


class StateMismatch(AuthFlowError):
    pass


class TokenExchangeFailed(AuthFlowError):
    pass


class ExtractionError(MigrationError):
    """The search page did not match the expected layout."""


class MarkerNotFound(ExtractionError):
    def __init__(self, marker):
        super().__init__(f"Marker not found in search response: {marker!r}")
        self.marker = marker


class SchemaMismatch(ExtractionError):
    def __init__(self, message, payload=None):
        super().__init__(message)
        self.payload = payload


class RateLimitInternalError(MigrationError):
    """Bucket accounting could not be performed (lock not acquired)."""


class PaginationLimitExceeded(MigrationError):
    pass
