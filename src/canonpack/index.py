"""Cross-package lookup of files by canonical identity."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from .exceptions import ConflictingArtifactsError
from .models import PackageClosure, PackageFileReference, PackageReference, ResourceMetadata
from .storage.base import PackageCache, Project

logger = logging.getLogger(__name__)


class FileIndex:
    """Ordered index rows of the local project and every package of a closure.

    Insertion order matters: the project comes first, then closure references
    in closure order, and lookups return the earliest match.
    """

    def __init__(self, rows: Iterable[PackageFileReference] = ()):
        self._rows: List[PackageFileReference] = list(rows)

    def __iter__(self) -> Iterator[PackageFileReference]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __getitem__(self, i: int) -> PackageFileReference:
        return self._rows[i]

    def add(self, package: PackageReference, metadata: ResourceMetadata) -> PackageFileReference:
        """Append one row.

        Args:
            package: Owning package, PackageReference.NONE for project files.
            metadata: Index entry of the file.

        Returns:
            The row that was added.
        """
        row = PackageFileReference.from_metadata(package, metadata)
        self._rows.append(row)
        return row

    def add_entries(self, package: PackageReference, entries: Iterable[ResourceMetadata]) -> None:
        for metadata in entries:
            self.add(package, metadata)

    def index_project(self, project: Project) -> None:
        """Add the project's own files as local rows."""
        self.add_entries(PackageReference.NONE, project.get_index())

    def index_package(self, cache: PackageCache, reference: PackageReference) -> None:
        self.add_entries(reference, cache.get_canonical_index_entries(reference))

    def index_closure(self, cache: PackageCache, closure: PackageClosure) -> None:
        """Add every package of ``closure`` in closure order."""
        for reference in closure.references:
            self.index_package(cache, reference)

    def _candidates(self, canonical: str, version: Optional[str]) -> List[PackageFileReference]:
        if version:
            return [r for r in self._rows if r.canonical == canonical and r.version == version]
        return [r for r in self._rows if r.canonical == canonical]

    def resolve_canonical(self, canonical: str, version: Optional[str] = None) -> Optional[PackageFileReference]:
        """First row with this canonical (and version, when given)."""
        candidates = self._candidates(canonical, version)
        return candidates[0] if candidates else None

    def resolve_best_candidate_by_canonical(
        self, canonical: str, version: Optional[str] = None
    ) -> Optional[PackageFileReference]:
        """Single authoritative row for a canonical.

        With several matches, only rows flagged with a snapshot or an expansion
        count. Exactly one of those wins; several raise
        ConflictingArtifactsError; none yields None.
        """
        candidates = self._candidates(canonical, version)
        if len(candidates) <= 1:
            return candidates[0] if candidates else None

        authoritative = [c for c in candidates if c.has_snapshot or c.has_expansion]
        if len(authoritative) == 1:
            return authoritative[0]
        if authoritative:
            raise ConflictingArtifactsError(canonical, authoritative)
        logger.debug("%d candidates for %s, none authoritative", len(candidates), canonical)
        return None

    def find_by_id(self, resource_type: str, id: str) -> Optional[PackageFileReference]:
        """First row for a resource type and logical id.

        Args:
            resource_type: Resource type, e.g. ``StructureDefinition``.
            id: Logical id of the resource.

        Returns:
            The earliest matching row, or None.
        """
        return next((r for r in self._rows if r.resource_type == resource_type and r.id == id), None)

    def find_by_file_name(self, file_name: str) -> Optional[PackageFileReference]:
        """First row whose file name equals ``file_name``."""
        return next((r for r in self._rows if r.file_name == file_name), None)

    def find_by_file_path(self, file_path: str) -> Optional[PackageFileReference]:
        return next((r for r in self._rows if r.file_path == file_path), None)

    def file_names(self) -> List[str]:
        return [r.file_name for r in self._rows if r.file_name]


def build_index(project: Project, cache: PackageCache, closure: PackageClosure) -> FileIndex:
    """Index the project followed by every package of its closure.

    Args:
        project: Project whose own files come first.
        cache: Cache holding the closure's packages.
        closure: Restored closure to index.

    Returns:
        A FileIndex whose lookups prefer project files, then earlier packages.
    """
    index = FileIndex()
    index.index_project(project)
    index.index_closure(cache, closure)
    logger.debug("Built index with %d rows for %d packages", len(index), len(closure.references))
    return index
