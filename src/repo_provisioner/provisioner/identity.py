"""Organization identity derived from the configured organization URL."""

from __future__ import annotations

from repo_provisioner.provisioner.errors import ConfigurationError


def resolve_organization(base_url: str) -> str:
    """Return the organization name: the last non-empty path segment of `base_url`.

    Example: "https://github.com/NextNodeSolutions" -> "NextNodeSolutions".

    Raises:
        ConfigurationError: If the URL has no segments.
    """

    segments = [s for s in base_url.strip().split("/") if s]
    if not segments:
        raise ConfigurationError(
            f"Could not extract organization from organization URL: {base_url!r}"
        )
    return segments[-1]
