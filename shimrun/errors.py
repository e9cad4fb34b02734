"""Exception types for module resolution, loading and supervision.

Error taxonomy:
- SpecifierNotFoundError: a lookup found nothing. Recoverable, drives the
  fallback search and is never logged.
- ResolutionError: every candidate was exhausted. Fatal for the import.
- TransformError: the transform service rejected a source file. Fatal for
  that load and never retried.
- UnsupportedSpecifierError: the specifier can never resolve (unknown scheme).
- AliasConfigError: the alias configuration could not be read. Only used
  internally to switch aliasing off.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class ShimrunError(Exception):
    """Base exception for loader errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class SpecifierNotFoundError(ShimrunError, ModuleNotFoundError):
    """A single resolution attempt did not find a module."""

    code = "ERR_MODULE_NOT_FOUND"

    def __init__(self, specifier: str, requesting_file: Path | str | None = None):
        message = f"Cannot find module '{specifier}'"
        if requesting_file:
            message += f" imported from '{requesting_file}'"
        super().__init__(message, details={"specifier": specifier, "requesting_file": requesting_file})
        self.specifier = specifier
        self.requesting_file = requesting_file


class ResolutionError(ShimrunError, ImportError):
    """Resolution ran out of candidates."""

    def __init__(self, specifier: str, requesting_file: Path | str | None = None):
        message = f"[shimrun] Cannot resolve '{specifier}'"
        if requesting_file:
            message += f" from '{requesting_file}'"
        super().__init__(message, details={"specifier": specifier, "requesting_file": requesting_file})
        self.specifier = specifier
        self.requesting_file = requesting_file


class TransformError(ShimrunError):
    """The transform service failed for a file."""

    def __init__(self, file_path: Path | str, reason: str):
        super().__init__(
            f"[shimrun] Transform error in {file_path}: {reason}",
            details={"file": str(file_path), "reason": reason},
        )
        self.file_path = str(file_path)
        self.reason = reason


class UnsupportedSpecifierError(ShimrunError, ValueError):
    """The specifier uses a scheme the host cannot load."""

    def __init__(self, specifier: str, scheme: str):
        super().__init__(
            f"Unsupported specifier scheme '{scheme}:' in '{specifier}'",
            details={"specifier": specifier, "scheme": scheme},
        )
        self.specifier = specifier
        self.scheme = scheme


class AliasConfigError(ShimrunError):
    """The alias configuration file is missing or malformed."""

    def __init__(self, config_path: Path | str, reason: str):
        super().__init__(
            f"Invalid alias configuration {config_path}: {reason}",
            details={"config": str(config_path), "reason": reason},
        )
        self.config_path = str(config_path)
