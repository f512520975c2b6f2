"""
Centralized constants for nuresolve.

This module defines immutable configuration values used across nuresolve,
including registry endpoints, network settings, cache policy, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "nuresolve/{version}"

#: Identifier type used for every resolved NuGet package.
PACKAGE_TYPE: Final[str] = "NuGet"

#: Source name recorded on issues raised by the resolver.
ISSUE_SOURCE: Final[str] = "NuGet"

# ---------------------------------------------------------------------------
# NuGet endpoints
# ---------------------------------------------------------------------------

#: Default NuGet V3 service index.
DEFAULT_SERVICE_INDEX_URL: Final[str] = "https://api.nuget.org/v3/index.json"

#: Service index resource type that points at the registration catalogs.
REGISTRATIONS_BASE_URL_TYPE: Final[str] = "RegistrationsBaseUrl/3.6.0"

#: Registration catalog path below a registrations base URL.
CATALOG_PATH_TEMPLATE: Final[str] = "{base_url}/{name}/index.json"

#: Web service answering "nearest framework" queries with an HTML page.
NEAREST_FRAMEWORK_URL: Final[str] = (
    "https://nugettools.azurewebsites.net/5.11.0/get-nearest-framework"
)

#: Placeholder ``licenseUrl`` written by NuGet for packages using ``license``.
DEPRECATED_LICENSE_URL: Final[str] = "https://aka.ms/deprecateLicenseUrl"

#: Archive and spec suffixes used to derive a nuspec URL.
PACKAGE_ARCHIVE_SUFFIX: Final[str] = ".nupkg"
PACKAGE_SPEC_SUFFIX: Final[str] = ".nuspec"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

#: Maximum number of concurrent registry requests.
DEFAULT_MAX_CONCURRENCY: Final[int] = 10

#: Registry documents are treated as fresh for this many days, regardless
#: of the ``Cache-Control`` headers sent by the registry.
DEFAULT_CACHE_MAX_AGE_DAYS: Final[int] = 7

# ---------------------------------------------------------------------------
# Definition files
# ---------------------------------------------------------------------------

#: Largest definition or configuration file read (10 MB).
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024

#: File name of the NuGet client configuration (matched case-insensitively).
NUGET_CONFIG_FILE_NAME: Final[str] = "nuget.config"

#: File name of the legacy package list.
PACKAGES_CONFIG_FILE_NAME: Final[str] = "packages.config"

#: Suffixes of SDK-style MSBuild project files.
PROJECT_FILE_SUFFIXES: Final[Sequence[str]] = (".csproj", ".fsproj", ".vbproj")

#: Scope name used for dependencies without a target framework.
ALL_TARGET_FRAMEWORKS_SCOPE: Final[str] = "allTargetFrameworks"

#: Scope name prefix for development-only dependencies.
DEV_SCOPE_PREFIX: Final[str] = "dev-"

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
