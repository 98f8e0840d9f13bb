"""
Error taxonomy shared by the resolver, the orchestrator and the CLI.

Every error carries a short human-readable ``message`` suitable for the
presentation layer.
"""

from typing import Optional


class GityapError(Exception):
    """Base class for all typed errors surfaced to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(GityapError):
    """Handle does not exist upstream."""


class RateLimited(GityapError):
    """Upstream quota exhausted."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "GitHub API rate limit exceeded. Please try again later or add a GITHUB_TOKEN."
        )


class Unauthenticated(GityapError):
    """Session for the channel collaborator is missing, invalid or expired."""


class UpstreamError(GityapError):
    """Any other non-2xx response, or a transport failure."""

    def __init__(self, message: str, status: Optional[int] = None, status_text: str = ""):
        super().__init__(message)
        self.status = status
        self.status_text = status_text


class ValidationError(UpstreamError):
    """Upstream payload failed boundary validation."""

    def __init__(self, kind: str, errors: list):
        super().__init__(f"Invalid {kind} payload: {'; '.join(errors)}")
        self.errors = errors


class ResolutionTimeout(GityapError):
    """Outer deadline elapsed before both sides resolved."""

    def __init__(self, seconds: float):
        super().__init__(f"Resolution timed out after {seconds:g}s")
        self.seconds = seconds


class ConfigError(GityapError):
    """Malformed configuration value."""


class PartialEnrichmentFailure(Exception):
    """A commit-count tier failed. Absorbed inside the resolver, never surfaced."""

    def __init__(self, tier: str, cause: Exception):
        super().__init__(f"{tier} tier failed: {cause}")
        self.tier = tier
        self.cause = cause
