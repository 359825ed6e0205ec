"""Custom exceptions for NiftyNiti.

Pipeline exceptions (quote parsing, external calls) are recovered inside the
orchestrator and never reach the HTTP layer. Persistence exceptions are mapped
to HTTP status codes by the API routes.
"""


class NiftyNitiError(Exception):
    """Base exception for all NiftyNiti errors."""


class MalformedSeries(NiftyNitiError):
    """Raised when a raw quote payload cannot be turned into a valid series."""


class InsufficientHistory(NiftyNitiError):
    """Raised when a series is shorter than an indicator's required window."""


class TransportFailure(NiftyNitiError):
    """Raised when an external service could not be reached."""


class UpstreamError(NiftyNitiError):
    """Raised when an external service answered with an error or unusable body."""


class StaleResponse(NiftyNitiError):
    """Raised when a result belongs to a reload that has since been superseded."""


class RecordNotFound(NiftyNitiError):
    """Raised when a blog post or prediction record does not exist."""


class DuplicateSlug(NiftyNitiError):
    """Raised when a blog post slug is already taken."""


class InvalidRecord(NiftyNitiError):
    """Raised when a record to persist is missing required fields."""
