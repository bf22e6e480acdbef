"""Project-specific exception types."""

from __future__ import annotations


class NCLXCError(RuntimeError):
    """Base error for domain-level nclxc failures."""

    exit_code = 1


class ValidationError(NCLXCError):
    """Raised when a host prerequisite or required input is not satisfied."""


class ReadinessError(NCLXCError):
    """Raised when the container never reports a usable network address."""


class UserAbort(NCLXCError):
    """Raised when the user declines to continue at a prompt."""

    exit_code = 0
