"""Contracts for package sources, caches and project storage."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set

from ..archive.packaging import extract_manifest_from_package_file
from ..exceptions import ManifestError
from ..models import (
    CanonicalIndex,
    PackageClosure,
    PackageDependency,
    PackageManifest,
    PackageReference,
    ResourceMetadata,
)
from ..versioning.versions import Versions, resolve_dependency, versions_from_references

logger = logging.getLogger(__name__)


class PackageServer(ABC):
    """Anything that can list versions of a package and hand out its archive."""

    @abstractmethod
    def get_versions(self, name: str) -> Versions:
        """Return known versions for ``name``; empty when unknown or unreachable."""

    @abstractmethod
    def get_package(self, reference: PackageReference) -> Optional[bytes]:
        """Return the raw archive bytes, or None when they cannot be produced."""


class PackageCache(PackageServer):
    """Store of installed packages keyed by (name, version).

    ``install`` must be idempotent: installing a present reference again is a
    no-op or an overwrite, never an error.
    """

    @abstractmethod
    def is_installed(self, reference: PackageReference) -> bool:
        """True when the reference is present in the cache."""

    @abstractmethod
    def install(self, reference: PackageReference, buffer: bytes) -> None:
        """Store the archive contents for ``reference``."""

    @abstractmethod
    def read_manifest(self, reference: PackageReference) -> Optional[PackageManifest]:
        """Manifest of an installed package, None when absent."""

    @abstractmethod
    def get_canonical_index(self, reference: PackageReference) -> Optional[CanonicalIndex]:
        """Index of an installed package, built on first read when needed."""

    @abstractmethod
    def get_file_content(self, reference: PackageReference, filename: str) -> Optional[bytes]:
        """Raw content of ``filename`` (relative to the package root), or None."""

    @abstractmethod
    def list_installed(self) -> Set[PackageReference]:
        """All installed references."""

    def get_canonical_index_entries(self, reference: PackageReference) -> List[ResourceMetadata]:
        index = self.get_canonical_index(reference)
        if index is None:
            return []
        return list(index.files)

    def get_versions(self, name: str) -> Versions:
        return versions_from_references(with_name(self.list_installed(), name))


class Project(ABC):
    """Project-local storage: manifest, lock file and the project's own files."""

    @abstractmethod
    def read_manifest(self) -> Optional[PackageManifest]:
        """The project manifest, None when there is none yet."""

    @abstractmethod
    def write_manifest(self, manifest: PackageManifest) -> None:
        """Persist the manifest."""

    @abstractmethod
    def read_closure(self) -> Optional[PackageClosure]:
        """The lock file contents, None when there is no lock file."""

    @abstractmethod
    def write_closure(self, closure: PackageClosure) -> None:
        """Persist the lock file."""

    @abstractmethod
    def get_file_content(self, filename: str) -> Optional[bytes]:
        """Raw content of a project file, None when missing."""

    @abstractmethod
    def get_index(self) -> List[ResourceMetadata]:
        """Index rows for the project's own files."""


def with_name(references: Iterable[PackageReference], name: str) -> List[PackageReference]:
    """Filter references down to one package name.

    Args:
        references: References to filter.
        name: Package name as written in manifests, ``@scope/name`` for scoped packages.

    Returns:
        The references whose full name matches ``name`` case-insensitively.
    """
    return [r for r in references if (r.full_name or "").lower() == name.lower()]


def resolve(server: PackageServer, dependency: PackageDependency) -> PackageReference:
    """Resolve a dependency against the versions a server knows.

    Args:
        server: Registry or cache to ask for versions.
        dependency: Name and range to satisfy.

    Returns:
        The highest matching reference, or PackageReference.NONE.
    """
    return resolve_dependency(server.get_versions(dependency.name), dependency)


def get_latest(server: PackageServer, name: str) -> PackageReference:
    """Highest version of ``name`` on ``server``, or PackageReference.NONE."""
    latest = server.get_versions(name).latest()
    if latest is None:
        return PackageReference.NONE
    return PackageReference.create(name, str(latest))


def has_match(server: PackageServer, dependency: PackageDependency) -> bool:
    return resolve(server, dependency).found


def read_package_domain_version(cache: PackageCache, reference: PackageReference) -> Optional[str]:
    """Domain version declared by an installed package.

    Args:
        cache: Cache holding the package.
        reference: Installed package to inspect.

    Returns:
        The declared domain version, or None when the package or its
        manifest is unavailable.
    """
    manifest = cache.read_manifest(reference)
    return manifest.domain_version if manifest is not None else None


def install_from_file(cache: PackageCache, path: str) -> PackageReference:
    """Install a local .tgz, taking its identity from the embedded manifest.

    Args:
        cache: Cache to install into.
        path: Path of the package archive.

    Returns:
        Reference of the installed package.

    Raises:
        ManifestError: If the archive has no manifest with a name and version.
    """
    manifest = extract_manifest_from_package_file(path)
    if manifest is None or manifest.package_reference.not_found:
        raise ManifestError(f"{path} does not contain a usable package manifest")
    reference = manifest.package_reference
    with open(path, "rb") as f:
        cache.install(reference, f.read())
    logger.info("Installed %s from %s", reference, path)
    return reference
