"""NuGet V3 registry client for nuresolve.

:class:`NuGetRegistry` walks the registry's document hierarchy::

    service index ──► registrations base URL
                        └─► <base>/<id>/index.json        (PackageCatalog)
                              └─► catalogEntry["@id"]     (PackageDetails)
                              └─► packageContent→.nuspec  (PackageSpec)

Every document is memoized for the lifetime of the client (catalogs by
lower-cased package id, manifests and specs by ``"name:version"``) on top
of the HTTP client's response cache.  Published package metadata never
changes, so these caches are never invalidated.

Typical usage::

    async with HTTPClient() as http:
        registry = await NuGetRegistry.create(http, [DEFAULT_SERVICE_INDEX_URL])
        versions = await registry.get_available_versions("Newtonsoft.Json")
        details  = await registry.get_details("Newtonsoft.Json", "13.0.1")
"""

from __future__ import annotations

import re
import asyncio
from typing import Iterable, List, Sequence

from nuresolve.utils.http import HTTPClient
from nuresolve.utils.cache import AsyncMemo
from nuresolve.utils.logger import get_logger
from nuresolve.models.identifier import Identifier
from nuresolve.core.versioning import Version, normalize_version, parse_version
from nuresolve.models.registry import (
    CatalogEntry,
    CatalogPage,
    PackageCatalog,
    PackageDetails,
    PackageSpec,
    ServiceIndex,
)
from nuresolve.exceptions import (
    CatalogNotFoundError,
    NuResolveError,
    RegistryError,
    RegistryUnavailableError,
    VersionNotFoundError,
)
from nuresolve.constants import (
    CATALOG_PATH_TEMPLATE,
    PACKAGE_ARCHIVE_SUFFIX,
    PACKAGE_SPEC_SUFFIX,
    REGISTRATIONS_BASE_URL_TYPE,
)

logger = get_logger("registry")

# Public API
__all__ = ["NuGetRegistry", "derive_spec_url"]


def derive_spec_url(package_content: str, version: str) -> str:
    """Derive the ``.nuspec`` URL from a package archive URL.

    The archive suffix ``.<version>.nupkg`` is replaced by ``.nuspec``,
    where *version* has its build metadata stripped.  Flat-container URLs
    are lower-case, so the suffix is matched case-insensitively.

    Raises:
        ValueError: *package_content* does not end in the expected suffix.

    Example::

        >>> derive_spec_url(
        ...     "https://host/flat/foo/1.0.0-beta/foo.1.0.0-beta.nupkg", "1.0.0-Beta+abc"
        ... )
        'https://host/flat/foo/1.0.0-beta/foo.nuspec'
    """
    suffix = f".{normalize_version(version)}{PACKAGE_ARCHIVE_SUFFIX}"
    spec_url, count = re.subn(
        re.escape(suffix),
        PACKAGE_SPEC_SUFFIX,
        package_content,
        flags=re.IGNORECASE,
    )
    if not count:
        raise ValueError(f"'{package_content}' does not end with '{suffix}'")
    return spec_url


class NuGetRegistry:
    """Cached client for the NuGet V3 registration resources.

    Use :meth:`create` to discover the registrations base URLs from one or
    more service indices; the constructor accepts them directly.

    Args:
        http_client: Shared :class:`HTTPClient`.
        registrations_base_urls: Base URLs tried in order, without a
            trailing slash.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        registrations_base_urls: Sequence[str],
    ) -> None:
        if not registrations_base_urls:
            raise RegistryUnavailableError("No registrations base URL is configured.")

        self.http_client = http_client
        self.registrations_base_urls: List[str] = [
            url.rstrip("/") for url in registrations_base_urls
        ]

        self._catalogs: AsyncMemo[str, PackageCatalog] = AsyncMemo("catalog")
        self._details: AsyncMemo[str, PackageDetails] = AsyncMemo("details")
        self._specs: AsyncMemo[str, PackageSpec] = AsyncMemo("spec")

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        http_client: HTTPClient,
        service_index_urls: Sequence[str],
    ) -> "NuGetRegistry":
        """Fetch every service index concurrently and build a client.

        All indices must load.  Registrations base URLs keep the order in
        which the indices and their resources are declared.

        Raises:
            RegistryUnavailableError: A service index cannot be fetched, or
                none of them declares a registrations base URL.
        """
        results = await asyncio.gather(
            *(http_client.get_json(url) for url in service_index_urls),
            return_exceptions=True,
        )

        base_urls: List[str] = []
        for url, result in zip(service_index_urls, results):
            if isinstance(result, BaseException):
                raise RegistryUnavailableError(
                    f"Failed to load service index '{url}': {result}",
                    url=url,
                ) from result

            resources = ServiceIndex.from_json(result).urls_of_type(REGISTRATIONS_BASE_URL_TYPE)
            logger.debug("Service index %s declares %d registration URL(s)", url, len(resources))
            base_urls.extend(resource.rstrip("/") for resource in resources)

        if not base_urls:
            raise RegistryUnavailableError(
                f"None of the service indices {list(service_index_urls)} declares a "
                f"'{REGISTRATIONS_BASE_URL_TYPE}' resource."
            )

        return cls(http_client, base_urls)

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    async def get_catalog(self, name: str) -> PackageCatalog:
        """Return the registration catalog of *name*.

        Base URLs are tried in order; the first that answers wins and is
        cached under the lower-cased name.

        Raises:
            CatalogNotFoundError: No base URL serves the catalog.
        """
        key = name.lower()
        return await self._catalogs.get_or_populate(key, lambda: self._fetch_catalog(name))

    async def _fetch_catalog(self, name: str) -> PackageCatalog:
        tried: List[str] = []

        for base_url in self.registrations_base_urls:
            url = CATALOG_PATH_TEMPLATE.format(base_url=base_url, name=name.lower())
            tried.append(url)
            try:
                data = await self.http_client.get_json(url)
                return await self._inline_pages(PackageCatalog.from_json(data))
            except NuResolveError as exc:
                logger.debug("Catalog for '%s' not available at %s: %s", name, url, exc)

        raise CatalogNotFoundError(
            f"Failed to retrieve package catalog for '{name}' from any of "
            f"{self.registrations_base_urls}.",
            package_name=name,
            tried_urls=tried,
        )

    async def _inline_pages(self, catalog: PackageCatalog) -> PackageCatalog:
        """Fetch the pages a large catalog only references by URL."""
        if all(page.is_inlined for page in catalog.pages):
            return catalog

        pages: List[CatalogPage] = []
        for page in catalog.pages:
            if page.is_inlined:
                pages.append(page)
                continue
            logger.debug("Fetching catalog page %s", page.id)
            pages.append(CatalogPage.from_json(await self.http_client.get_json(page.id)))

        return PackageCatalog(pages=pages)

    async def _find_entry(self, name: str, version: str) -> CatalogEntry:
        catalog = await self.get_catalog(name)
        entry = catalog.find_entry(version)
        if entry is None:
            raise VersionNotFoundError(
                f"Could not find version {version} of NuGet package {name}.",
                package_name=name,
                version=version,
            )
        return entry

    async def get_catalog_entry(self, name: str, version: str) -> CatalogEntry:
        """Return the catalog entry for an exact version.

        Raises:
            CatalogNotFoundError: The catalog cannot be retrieved.
            VersionNotFoundError: The catalog has no such version.
        """
        return await self._find_entry(name, version)

    # ------------------------------------------------------------------
    # Manifests and specs
    # ------------------------------------------------------------------

    async def get_details(self, name: str, version: str) -> PackageDetails:
        """Return the manifest (catalog leaf) of ``name`` at ``version``."""
        return await self._details.get_or_populate(
            f"{name}:{version}", lambda: self._fetch_details(name, version)
        )

    async def _fetch_details(self, name: str, version: str) -> PackageDetails:
        entry = await self._find_entry(name, version)
        if not entry.id:
            raise VersionNotFoundError(
                f"Could not find details URL for version {version} of NuGet package {name}.",
                package_name=name,
                version=version,
            )
        return PackageDetails.from_json(await self.http_client.get_json(entry.id))

    async def get_spec(self, name: str, version: str) -> PackageSpec:
        """Return the parsed ``.nuspec`` of ``name`` at ``version``."""
        return await self._specs.get_or_populate(
            f"{name}:{version}", lambda: self._fetch_spec(name, version)
        )

    async def _fetch_spec(self, name: str, version: str) -> PackageSpec:
        entry = await self._find_entry(name, version)
        try:
            spec_url = derive_spec_url(entry.package_content, version)
        except ValueError as exc:
            raise VersionNotFoundError(
                f"Could not find spec URL for version {version} of NuGet package {name}.",
                package_name=name,
                version=version,
            ) from exc

        body = await self.http_client.get_text(spec_url)
        try:
            return PackageSpec.from_xml(body)
        except ValueError as exc:
            raise RegistryError(
                f"Invalid package spec for {name} {version}: {exc}",
                package_name=name,
                url=spec_url,
            ) from exc

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    async def get_available_versions(self, name: str) -> List[Version]:
        """Return every published version of *name*, ascending.

        Failures are not propagated: an unknown package simply has no
        versions.
        """
        try:
            catalog = await self.get_catalog(name)
        except NuResolveError as exc:
            logger.debug("No versions known for '%s': %s", name, exc)
            return []

        return sorted(parse_version(entry.version) for entry in catalog.entries() if entry.version)

    async def prefetch_details(self, identifiers: Iterable[Identifier]) -> None:
        """Concurrently warm the manifest cache.

        Per-identifier failures are ignored here; they surface again when
        the manifest is requested through :meth:`get_details`.
        """
        await asyncio.gather(
            *(self.get_details(i.name, i.version) for i in identifiers),
            return_exceptions=True,
        )
