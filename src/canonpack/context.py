"""The resolution context: one project, one cache and an optional registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from . import restore as restore_ops
from .exceptions import CanonpackError, FileContentNotFoundError, PackageNotFoundError
from .index import FileIndex, build_index
from .models import PackageClosure, PackageDependency, PackageFileReference, PackageReference
from .storage import manifest_file, project_ops
from .storage.base import PackageCache, PackageServer, Project, read_package_domain_version

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


@dataclass
class InstallResult:
    closure: PackageClosure
    reference: PackageReference


class PackageContext:
    """Drives restore and answers file lookups for one project.

    The file index is built on the first ``index()`` call and kept until
    ``restore()`` or ``invalidate_index()``. Restore and index queries on the
    same context must not run concurrently.
    """

    def __init__(
        self,
        cache: PackageCache,
        project: Project,
        server: Optional[PackageServer] = None,
        report: Optional[Reporter] = None,
    ):
        self.cache = cache
        self.project = project
        self.server = server
        self.report = report
        self.closure: Optional[PackageClosure] = None
        self._index: Optional[FileIndex] = None

    # Restore

    def cache_install(self, dependency: PackageDependency) -> PackageReference:
        return restore_ops.cache_install(self, dependency)

    def install(self, name: str, range: Optional[str] = None) -> PackageReference:
        """Install a package into the cache without touching the project."""
        return self.cache_install(PackageDependency(name, range))

    def restore(self) -> PackageClosure:
        """Rebuild the closure from the project manifest and write the lock file.

        Returns:
            The new closure. Unresolvable dependencies are listed in its
            ``missing`` entries rather than raised.
        """
        self.invalidate_index()
        return restore_ops.restore(self)

    def ensure_manifest(self, name: str, domain_version: Optional[str] = None) -> None:
        manifest = self.project.read_manifest()
        if manifest is None:
            manifest = manifest_file.create(name, domain_version)
        self.project.write_manifest(manifest)

    def install_dependency(self, dependency: PackageDependency) -> InstallResult:
        """Add a dependency to the project manifest and restore.

        Raises:
            PackageNotFoundError: nothing satisfying the dependency could be installed.
        """
        reference = self.cache_install(dependency)
        if reference.not_found:
            raise PackageNotFoundError(f"Package '{dependency}' was not found.")

        if not project_ops.has_manifest(self.project):
            self.ensure_manifest("project", read_package_domain_version(self.cache, reference))
        project_ops.add_dependency(self.project, dependency)

        return InstallResult(closure=self.restore(), reference=reference)

    # Index

    def build_index(self) -> FileIndex:
        """Index the project and the packages of its lock file.

        Raises:
            CanonpackError: If the project has no lock file yet.
        """
        closure = self.project.read_closure()
        if closure is None:
            raise CanonpackError("The project does not contain a package lock file.")
        self.closure = closure
        return build_index(self.project, self.cache, closure)

    def index(self) -> FileIndex:
        if self._index is None:
            self._index = self.build_index()
        return self._index

    def invalidate_index(self) -> None:
        self._index = None

    # Lookups

    def get_file_reference_by_canonical(
        self, uri: str, version: Optional[str] = None, resolve_best_candidate: bool = False
    ) -> Optional[PackageFileReference]:
        """Look up the index row for a canonical URL.

        Args:
            uri: Canonical URL of the resource.
            version: Optional resource version to match as well.
            resolve_best_candidate: Prefer the single row carrying a snapshot or
                expansion when several rows share the canonical.

        Returns:
            The matching row, or None.

        Raises:
            ConflictingArtifactsError: If ``resolve_best_candidate`` finds more
                than one authoritative row.
        """
        index = self.index()
        if resolve_best_candidate:
            return index.resolve_best_candidate_by_canonical(uri, version)
        return index.resolve_canonical(uri, version)

    def get_file_content(self, reference: PackageFileReference) -> Optional[bytes]:
        """Content from the project for local rows, from the cache otherwise."""
        path = reference.file_path or reference.file_name
        if path is None:
            return None
        if reference.is_local:
            return self.project.get_file_content(path)
        return self.cache.get_file_content(reference.package, path)

    def _content_of(self, reference: Optional[PackageFileReference]) -> Optional[bytes]:
        return self.get_file_content(reference) if reference is not None else None

    def get_file_content_by_canonical(
        self, uri: str, version: Optional[str] = None, resolve_best_candidate: bool = False
    ) -> Optional[bytes]:
        return self._content_of(self.get_file_reference_by_canonical(uri, version, resolve_best_candidate))

    def get_file_content_by_id(self, resource_type: str, id: str) -> Optional[bytes]:
        """Content of the first indexed resource with this type and id."""
        return self._content_of(self.index().find_by_id(resource_type, id))

    def get_file_content_by_file_name(self, file_name: str) -> Optional[bytes]:
        return self._content_of(self.index().find_by_file_name(file_name))

    def get_file_content_by_file_path(self, file_path: str) -> Optional[bytes]:
        return self._content_of(self.index().find_by_file_path(file_path))

    def get_file_names(self) -> List[str]:
        return self.index().file_names()

    def read_all_files(self) -> Iterator[bytes]:
        """Contents of every indexed file, in index order.

        Raises:
            FileContentNotFoundError: an indexed file is gone from its package.
        """
        for reference in self.index():
            content = self.get_file_content(reference)
            if content is None:
                raise FileContentNotFoundError(f"{reference.file_path} is missing from {reference.package}")
            yield content
