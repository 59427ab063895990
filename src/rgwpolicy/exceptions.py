"""Custom exception classes for the rgwpolicy engine.

Every failure raised by this package is a local, deterministic validation
failure. Nothing here talks to the network, so none of these errors is
retryable; callers surface them to the configuration author as diagnostics.
"""

from __future__ import annotations


class RgwPolicyError(Exception):
    """Base exception class for all rgwpolicy errors."""

    pass


class PolicyError(RgwPolicyError):
    """Base exception class for policy document errors."""

    pass


class InvalidStatementError(PolicyError):
    """Raised when a statement violates a mutual-exclusion or required-field rule."""

    def __init__(self, message: str, index: int | None = None) -> None:
        if index is not None:
            message = f"statement {index}: {message}"
        super().__init__(message)
        self.index = index


class MalformedPolicyError(PolicyError):
    """Raised when policy text is not syntactically valid JSON.

    ``source`` records where the text came from (``"configuration"`` or
    ``"remote"``) so the message points at the right fix.
    """

    def __init__(self, message: str, source: str = "configuration") -> None:
        if source == "remote":
            hint = "policy returned by the RadosGW API is not valid JSON"
        else:
            hint = "policy in configuration is not valid JSON"
        super().__init__(f"{hint}: {message}")
        self.source = source


class IdentifierError(RgwPolicyError):
    """Base exception class for composite identifier errors."""

    pass


class InvalidImportFormatError(IdentifierError):
    """Raised when an import or lookup string does not match its resource kind's grammar."""

    def __init__(self, kind: str, expected: str, detail: str | None = None) -> None:
        message = f"invalid {kind} identifier: expected format '{expected}'"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.kind = kind
        self.expected = expected
