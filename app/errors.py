"""Exception taxonomy shared by the services and the HTTP layer."""

from __future__ import annotations


class StreamHubError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(StreamHubError):
    """An upstream credential or required setting is missing."""

    status_code = 503


class ValidationError(StreamHubError):
    """A required query parameter is missing or invalid."""

    status_code = 400


class NotFoundError(StreamHubError):
    """The requested title or platform does not exist."""

    status_code = 404


class UpstreamFailure(StreamHubError):
    """Network, status or parsing failure while talking to an external provider."""

    status_code = 500

    def __init__(self, service: str, message: str, *, status: int | None = None):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status = status
