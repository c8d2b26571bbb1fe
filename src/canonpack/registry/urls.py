"""URL shaping for package registries.

Two flavors exist: path-style registries (``{root}/{name}/{version}``) and
scoped, npm-style registries (``{root}/{name}/-/{name}-{version}.tgz``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..constants import KNOWN_REGISTRIES, PublishMode, RegistryStyle
from ..models import PackageReference


class PackageUrlProvider(ABC):
    """Builds listing, archive and publish URLs for one registry root."""

    label = ""

    def __init__(self, root: str):
        self.root = root.rstrip("/")

    @abstractmethod
    def listing_url(self, name: str, scope: Optional[str] = None) -> str:
        """URL of the version listing for ``name``."""

    @abstractmethod
    def package_url(self, reference: PackageReference) -> str:
        """URL of the archive of ``reference``."""

    @abstractmethod
    def publish_url(self, domain_version: int, reference: PackageReference, mode: PublishMode) -> str:
        """URL to POST an archive of ``reference`` to."""

    def catalog_url(self) -> str:
        return f"{self.root}/catalog"

    def __str__(self) -> str:
        return f"({self.label}) {self.root}"


class PathUrlProvider(PackageUrlProvider):
    label = "FHIR"

    def listing_url(self, name: str, scope: Optional[str] = None) -> str:
        return f"{self.root}/{name}"

    def package_url(self, reference: PackageReference) -> str:
        return f"{self.root}/{reference.name}/{reference.version}"

    def publish_url(self, domain_version: int, reference: PackageReference, mode: PublishMode) -> str:
        return f"{self.root}/r{domain_version}?publishMode={mode.value}"


class ScopedUrlProvider(PackageUrlProvider):
    label = "NPM"

    def listing_url(self, name: str, scope: Optional[str] = None) -> str:
        if scope is None:
            return f"{self.root}/{name}"
        return f"{self.root}/@{scope}%2F{name}"

    def package_url(self, reference: PackageReference) -> str:
        tarball = f"{reference.name}/-/{reference.name}-{reference.version}.tgz"
        if reference.scope is None:
            return f"{self.root}/{tarball}"
        return f"{self.root}/@{reference.scope}/{tarball}"

    def publish_url(self, domain_version: int, reference: PackageReference, mode: PublishMode) -> str:
        # Publish mode is not part of the npm-style route
        return f"{self.root}/r{domain_version}/{reference.name}"


_PROVIDERS = {
    RegistryStyle.PATH: PathUrlProvider,
    RegistryStyle.SCOPED: ScopedUrlProvider,
}


def create_url_provider(source: str, npm: bool = False) -> PackageUrlProvider:
    """Provider for a registry root URL or a well-known registry name."""
    known = KNOWN_REGISTRIES.get(source.lower())
    if known is not None:
        style, root = known
        return _PROVIDERS[style](root)
    style = RegistryStyle.SCOPED if npm else RegistryStyle.PATH
    return _PROVIDERS[style](source)
