"""Error hierarchy for repository provisioning.

Whether an error is fatal or advisory is decided by the call site, not by the
error type.
"""

from __future__ import annotations


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""


class ConfigurationError(ProvisioningError):
    """Raised when configuration is missing or invalid."""


class RemoteApiError(ProvisioningError):
    """Raised when a GitHub REST call fails.

    Covers transport failures, non-success statuses and unexpected payloads.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        message = super().__str__()
        if self.body:
            return f"{message}: {self.body}"
        return message


class MalformedResponseError(RemoteApiError):
    """Raised when a successful response lacks an expected field."""


class VcsError(ProvisioningError):
    """Raised when a local git operation fails."""

    def __init__(self, message: str, *, command: list[str] | None = None, output: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.output = output

    def __str__(self) -> str:
        message = super().__str__()
        if self.output.strip():
            return f"{message}\n\n{self.output.strip()}"
        return message


class ProvisioningAborted(ProvisioningError):
    """Raised by the pipeline when a fatal step fails.

    The failing step is available as `stage`; the underlying error is chained
    as `__cause__`.
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage
