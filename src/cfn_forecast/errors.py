"""
Error types for template loading, identity resolution, and check execution.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class ForecastError(Exception):
    """Base exception for all forecast errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class StructuralTemplateError(ForecastError):
    """
    Raised when the template cannot be walked.

    Examples:
    - Template file cannot be read or parsed
    - Missing or empty Resources section
    - Resource without a Type

    Fatal: the run is aborted and no report is produced.
    """

    pass


class IdentityResolutionError(ForecastError):
    """
    Raised when the caller identity cannot be fetched or parsed.

    Fatal, and raised before any resource is checked.
    """

    pass


class ConfigurationError(ForecastError):
    """
    Raised for invalid deploy configuration.

    Examples:
    - Config file that is not a YAML/JSON mapping
    - Malformed key=value argument
    """

    pass


class CheckExecutionError(ForecastError):
    """
    Raised when an external probe or evaluation call fails.

    This is never an authorization decision. It is scoped to the check that
    raised it: the runner records an unknown outcome for that check and moves on.
    """

    pass


@dataclass
class ErrorContext:
    """
    Source location of an error.

    Attributes:
        line: Line number (1-indexed)
        file: Template path, when known
        logical_id: Resource the error relates to
    """

    line: int
    file: Path | None = None
    logical_id: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "template.yaml:10 (MyBucket)"
        """
        location = f"{self.file}:{self.line}" if self.file else f"line {self.line}"
        if self.logical_id:
            location += f" ({self.logical_id})"
        return location


def make_structural_error(
    message: str,
    line: int | None = None,
    file: Path | None = None,
    logical_id: str | None = None,
) -> StructuralTemplateError:
    """
    Helper to create a StructuralTemplateError with optional context.

    Args:
        message: Error description
        line: Optional line number (1-indexed)
        file: Optional template path
        logical_id: Optional resource logical id

    Returns:
        StructuralTemplateError with context if a line is known
    """
    if line:
        return StructuralTemplateError(
            message, ErrorContext(line=line, file=file, logical_id=logical_id)
        )
    return StructuralTemplateError(message)
