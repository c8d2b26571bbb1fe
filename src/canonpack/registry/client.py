"""HTTP client for a package registry.

Transport failures and 404s both surface as empty or None results; callers
that need to tell them apart should look at the logs.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional
from urllib.parse import urlencode

import requests

from ..archive.checksum import verify_shasum
from ..common.http_client import get_json, robust_get, safe_post
from ..common.logging_utils import extra_context, is_debug_enabled, safe_url
from ..constants import Constants, PublishMode
from ..models import (
    PackageCatalogEntry,
    PackageDependency,
    PackageListing,
    PackageReference,
    PublishResult,
)
from ..storage.base import PackageServer
from ..storage import base as storage_base
from ..versioning.versions import Versions, versions_from_listing
from .listing_cache import ListingCache
from .urls import PackageUrlProvider, create_url_provider

logger = logging.getLogger(__name__)


def _listing_key(name: str, scope: Optional[str]) -> str:
    return f"@{scope}/{name}" if scope else name


class RegistryClient(PackageServer):
    """PackageServer backed by a remote registry."""

    def __init__(
        self,
        url_provider: PackageUrlProvider,
        session: Optional[requests.Session] = None,
        listing_ttl: Optional[float] = None,
    ):
        self.url_provider = url_provider
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self._listings: ListingCache[PackageListing] = ListingCache(listing_ttl)

    @classmethod
    def create(cls, source: Optional[str] = None, npm: bool = False, **kwargs: Any) -> "RegistryClient":
        """Client for a registry root URL or well-known name (default registry when omitted)."""
        return cls(create_url_provider(source or Constants.DEFAULT_REGISTRY, npm=npm), **kwargs)

    def __str__(self) -> str:
        return str(self.url_provider)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Listings

    def download_listing_raw(self, name: str, scope: Optional[str] = None) -> Optional[str]:
        """Listing body as text; None on 404, other non-200 answers or transport errors."""
        url = self.url_provider.listing_url(name, scope)
        status, _, body = robust_get(url, session=self.session)
        if status == 200:
            try:
                return body.decode("utf-8-sig")
            except UnicodeDecodeError:
                logger.warning("Listing for %s is not valid UTF-8, assuming package missing.", name)
                return None
        if status == 404:
            logger.debug(
                "Package not found",
                extra=extra_context(event="http_response", component="registry", outcome="not_found",
                                    status_code=status, target=safe_url(url)),
            )
        elif status:
            logger.warning(
                "HTTP non-2xx handled",
                extra=extra_context(event="http_response", component="registry", outcome="handled_non_2xx",
                                    status_code=status, target=safe_url(url)),
            )
        return None

    def download_listing_raw_for_reference(self, reference: PackageReference) -> Optional[str]:
        if reference.version is not None and reference.version.startswith("git"):
            raise NotImplementedError("We cannot yet resolve git references")
        return self.download_listing_raw(reference.name, reference.scope)

    def download_listing(self, name: str, scope: Optional[str] = None) -> Optional[PackageListing]:
        cached = self._listings.get(_listing_key(name, scope))
        if cached is not None:
            return cached
        body = self.download_listing_raw(name, scope)
        if body is None:
            return None
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.warning("Couldn't decode listing JSON for %s, assuming package missing.", name)
            return None
        if not isinstance(data, dict):
            return None
        listing = PackageListing.from_dict(data)
        self._listings.set(_listing_key(name, scope), listing)
        return listing

    def get_versions(self, name: str) -> Versions:
        reference = PackageReference.parse(name)
        listing = self.download_listing(reference.name, reference.scope)
        if listing is None:
            return Versions()
        return versions_from_listing(listing)

    # Archives

    def _expected_shasum(self, reference: PackageReference) -> Optional[str]:
        listing = self._listings.get(_listing_key(reference.name, reference.scope))
        if listing is None:
            return None
        release = listing.versions.get(reference.version)
        if release is None or release.dist is None:
            return None
        return release.dist.shasum

    def get_package(self, reference: PackageReference) -> Optional[bytes]:
        """Archive bytes, or None when the download failed or did not verify."""
        url = self.url_provider.package_url(reference)
        status, _, body = robust_get(url, session=self.session)
        if status != 200 or not body:
            logger.warning(
                "Could not download %s",
                reference,
                extra=extra_context(event="download", component="registry", outcome="failed",
                                    status_code=status, target=safe_url(url)),
            )
            return None
        expected = self._expected_shasum(reference)
        if expected and not verify_shasum(body, expected):
            logger.warning("Checksum mismatch for %s; discarding download", reference)
            return None
        if is_debug_enabled(logger):
            logger.debug("Downloaded %s (%d bytes)", reference, len(body))
        return body

    # Catalog

    def catalog_packages(
        self,
        name: Optional[str] = None,
        canonical: Optional[str] = None,
        domain_version: Optional[str] = None,
        include_prerelease: bool = False,
    ) -> Optional[List[PackageCatalogEntry]]:
        """Search the registry catalog; None when the query failed."""
        params = [
            (key, value)
            for key, value in (("name", name), ("canonical", canonical), ("fhirversion", domain_version))
            if value
        ]
        params.append(("prerelease", "true" if include_prerelease else "false"))
        url = f"{self.url_provider.catalog_url()}?{urlencode(params)}"
        status, _, data = get_json(url, session=self.session)
        if status != 200 or not isinstance(data, list):
            logger.warning(
                "Catalog query failed",
                extra=extra_context(event="catalog", component="registry", outcome="failed",
                                    status_code=status, target=safe_url(url)),
            )
            return None
        return [PackageCatalogEntry.from_dict(item) for item in data if isinstance(item, dict)]

    def find_packages_by_name(self, partial: str) -> List[str]:
        entries = self.catalog_packages(name=partial) or []
        return [e.name for e in entries if e.name]

    def find_packages_by_canonical(self, canonical: str) -> List[str]:
        entries = self.catalog_packages(canonical=canonical) or []
        return [e.name for e in entries if e.name]

    # Publish

    def publish(
        self,
        reference: PackageReference,
        domain_version: int,
        buffer: bytes,
        mode: PublishMode = PublishMode.ANY,
    ) -> PublishResult:
        url = self.url_provider.publish_url(int(domain_version), reference, mode)
        response = safe_post(
            url,
            context="publish",
            data=buffer,
            session=self.session,
            headers={"Content-Type": "application/octet-stream"},
        )
        if response is None:
            return PublishResult(0, "")
        result = PublishResult(response.status_code, response.text or "")
        log = logger.info if result.ok else logger.warning
        log(
            "Publish %s returned %s",
            reference,
            result.status_code,
            extra=extra_context(event="publish", component="registry", status_code=result.status_code,
                                target=safe_url(url)),
        )
        return result

    # Resolution helpers

    def resolve(self, dependency: PackageDependency) -> PackageReference:
        return storage_base.resolve(self, dependency)

    def get_latest(self, name: str) -> PackageReference:
        return storage_base.get_latest(self, name)

    def has_match(self, dependency: PackageDependency) -> bool:
        return storage_base.has_match(self, dependency)
