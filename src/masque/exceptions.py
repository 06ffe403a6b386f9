"""Exceptions raised by Masque query-time operations."""

from __future__ import annotations


class MasqueError(Exception):
    """Base class for Masque errors."""


class IdentityGenerationError(MasqueError):
    """Raised when a synthetic identity cannot be produced."""


class NoTemplatesAvailableError(IdentityGenerationError):
    """Raised when the requested OS/browser pool holds no templates."""

    def __init__(self, os: str, browser: str) -> None:
        super().__init__(f"No templates available for {os}/{browser}")
        self.os = os
        self.browser = browser


class NoBrowsersAvailableError(IdentityGenerationError):
    """Raised when a random browser is requested for an OS without any."""

    def __init__(self, os: str) -> None:
        super().__init__(f"No browsers available for OS: {os}")
        self.os = os


class CombinationsExhaustedError(IdentityGenerationError):
    """Raised when every retry produced an already emitted combination."""

    def __init__(self, os: str, browser: str, attempts: int) -> None:
        super().__init__(
            f"No unused template combination for {os}/{browser} after {attempts} attempts"
        )
        self.os = os
        self.browser = browser
        self.attempts = attempts
