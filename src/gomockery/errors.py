"""Domain-specific errors for gomockery."""

from __future__ import annotations


class GoMockeryError(Exception):
    """Base error for gomockery."""


class ExtractionError(GoMockeryError):
    """Raised when Go source cannot be scanned for interfaces."""


class ToolchainError(ExtractionError):
    """Raised when the Go toolchain needed by the scanner is unavailable."""


class InterfaceNotFoundError(GoMockeryError):
    """Raised when a requested interface is not declared in the scanned source."""


class GenerationError(GoMockeryError):
    """Raised when a mock cannot be generated for one interface."""


class UnsupportedTypeError(GenerationError):
    """Raised when a type expression has a shape the renderer cannot emit."""


class SinkError(GoMockeryError):
    """Raised when generated output cannot be written to its destination."""


class ConfigError(GoMockeryError):
    """Raised when the run configuration is inconsistent."""
