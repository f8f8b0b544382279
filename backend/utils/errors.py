"""
Error taxonomy for the disaster response API.

Only ValidationError and InternalError are allowed to reach HTTP handlers.
Upstream and cache errors are absorbed by the services that raise them.
"""


class DisasterApiError(Exception):
    """Base class for all application errors"""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DisasterApiError):
    """Request cannot be served with the data supplied (400)"""

    status_code = 400


class UpstreamFetchError(DisasterApiError):
    """Network failure, timeout or non-2xx response from an upstream source"""

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}", {'source': source})
        self.source = source


class UpstreamParseError(DisasterApiError):
    """Upstream returned markup or JSON we could not make sense of"""

    def __init__(self, source, message):
        super().__init__(f"{source}: {message}", {'source': source})
        self.source = source


class CacheError(DisasterApiError):
    """Read or write failure against the durable cache"""


class InternalError(DisasterApiError):
    """Unanticipated failure inside a pipeline (500)"""

    status_code = 500
