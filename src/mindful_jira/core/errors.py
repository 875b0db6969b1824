"""Failure taxonomy for remote, storage and configuration errors."""


class JiraError(Exception):
    """Error from a Jira API call.

    Attributes:
        status_code: HTTP status code, None when no response was received
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkFailure(JiraError):
    """Transient failure: connection problems, timeouts, server errors."""


class AuthFailure(JiraError):
    """Credentials rejected. Requires reconfiguration, never retried automatically."""


class NotFound(JiraError):
    """The issue or comment no longer exists remotely."""


class ValidationFailure(JiraError):
    """The request was rejected as invalid (illegal transition, empty body, ...)."""


class StorageFailure(Exception):
    """The local annotation store could not be read or written."""


class ConfigError(Exception):
    """Configuration file missing or incomplete."""
