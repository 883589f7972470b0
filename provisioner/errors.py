"""
errors.py

Responsibility: the error values surfaced to the CLI.

Everything raised after a network call derives from `GitHubError` and carries
the HTTP status (when there was one) and the operation that failed. Input
problems detected before any network call are `ValueError`s.
"""

from __future__ import annotations


class GitHubError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None, operation: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.operation = operation


class TransportError(GitHubError):
    """Connection, TLS or timeout failure before a response was received."""


class AuthenticationError(GitHubError):
    pass


class PermissionDeniedError(GitHubError):
    pass


class NotFoundError(GitHubError):
    pass


class ValidationFailedError(GitHubError):
    pass


class NameConflictError(ValidationFailedError):
    pass


class BranchNotReadyError(GitHubError):
    """The branch did not become visible before the readiness deadline."""


class TemplateRefError(ValueError):
    pass


class ConfigError(ValueError):
    pass
