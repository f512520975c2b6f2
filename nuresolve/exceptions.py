"""
Custom exception hierarchy for nuresolve.

This module defines structured exception types used across nuresolve.
All exceptions inherit from :class:`NuResolveError` and support optional
structured metadata via the ``details`` attribute to improve diagnostics
and logging.

Constraint problems found during resolution are *not* exceptions; they are
recorded as :class:`~nuresolve.models.identifier.Issue` values instead.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional, Sequence


class NuResolveError(Exception):
    """Base exception for all nuresolve errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        # Internally normalize to a mutable dict
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ParseError(NuResolveError):
    """Raised when a definition or configuration file cannot be parsed.

    Args:
        message: Error description.
        line_number: Line number where parsing failed.
        file_path: Path to the file being parsed.
    """

    __slots__ = ("line_number", "file_path")

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        file_path: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "line", line_number)
        _add_if(details, "file", file_path)

        super().__init__(message, details)

        self.line_number = line_number
        self.file_path = file_path


class MalformedRangeError(NuResolveError):
    """Raised when a version range expression cannot be parsed.

    Args:
        message: Error description.
        range_text: The offending range expression.
    """

    __slots__ = ("range_text",)

    def __init__(self, message: str, *, range_text: Optional[str] = None) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "range", range_text)

        super().__init__(message, details)

        self.range_text = range_text


class FileOperationError(NuResolveError):
    """Raised when reading a definition or configuration file fails.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed.
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ConfigError(NuResolveError):
    """Raised when the configuration file is invalid.

    Args:
        message: Error description.
        config_path: Path of the configuration file.
        option: Name of the offending option.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option


class NetworkError(NuResolveError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised for failures related to the NuGet registry.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name


class RegistryUnavailableError(RegistryError):
    """Raised when the registry cannot be initialized from its service indices."""


class CatalogNotFoundError(RegistryError):
    """Raised when no registrations base URL serves a package's catalog.

    Args:
        message: Error description.
        tried_urls: Catalog URLs that were requested, in order.
        **kwargs: Additional arguments forwarded to ``RegistryError``.
    """

    __slots__ = ("tried_urls",)

    def __init__(
        self,
        message: str,
        *,
        tried_urls: Sequence[str] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.tried_urls = list(tried_urls)
        if self.tried_urls:
            self.details["tried"] = ", ".join(self.tried_urls)


class VersionNotFoundError(RegistryError):
    """Raised when a package catalog has no entry for a requested version.

    Args:
        message: Error description.
        version: The version that was looked up.
        **kwargs: Additional arguments forwarded to ``RegistryError``.
    """

    __slots__ = ("version",)

    def __init__(
        self,
        message: str,
        *,
        version: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.version = version
        if version is not None:
            self.details["version"] = version
