"""Sorted version sets and range resolution."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, TYPE_CHECKING

import semantic_version

from ..constants import VersionTokens
from ..models import PackageDependency, PackageReference
from .ranges import parse_range

if TYPE_CHECKING:
    from ..models import PackageListing

logger = logging.getLogger(__name__)


def parse_version(s: Optional[str]) -> Optional[semantic_version.Version]:
    """Parse a version string loosely; malformed input yields None.

    Surrounding whitespace and a leading ``v`` or ``=`` are tolerated.
    """
    if not s or not isinstance(s, str):
        return None
    text = s.strip().lstrip("=").strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    try:
        return semantic_version.Version(text)
    except ValueError:
        return None


class Versions:
    """Sorted collection of parsed versions for one package name.

    Strings that do not parse are dropped instead of failing the whole set,
    so a noisy registry listing still resolves.
    """

    def __init__(self, versions: Iterable[str] = ()):
        self._items: List[semantic_version.Version] = []
        self.append(versions)

    def append(self, versions: Iterable[str]) -> None:
        for s in versions:
            version = parse_version(s)
            if version is None:
                logger.debug("Skipping unparsable version %r", s)
                continue
            self._items.append(version)
        self._items.sort()

    @property
    def items(self) -> List[semantic_version.Version]:
        return list(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[semantic_version.Version]:
        return iter(self._items)

    def __contains__(self, version: object) -> bool:
        if isinstance(version, str):
            return self.has(version)
        return any(item == version for item in self._items)

    def latest(self) -> Optional[semantic_version.Version]:
        """Highest version, pre-releases included; None when empty."""
        return self._items[-1] if self._items else None

    def resolve(self, pattern: Optional[str]) -> Optional[semantic_version.Version]:
        """Highest version satisfying ``pattern``.

        An empty pattern or ``latest`` means the highest version overall. A
        malformed pattern, or one nothing satisfies, yields None.
        """
        if not pattern or pattern.strip() == VersionTokens.LATEST:
            return self.latest()
        spec = parse_range(pattern)
        if spec is None:
            return None
        return spec.select(self._items)

    def has(self, version: str) -> bool:
        parsed = parse_version(version)
        return parsed is not None and parsed in self._items

    def __repr__(self) -> str:
        return f"Versions({[str(v) for v in self._items]!r})"


def resolve_dependency(versions: Versions, dependency: PackageDependency) -> PackageReference:
    """Pick the best version for a dependency, or PackageReference.NONE."""
    version = versions.resolve(dependency.range)
    if version is None:
        return PackageReference.NONE
    return PackageReference.create(dependency.name, str(version))


def versions_from_listing(listing: "PackageListing") -> Versions:
    """Versions named by the keys of a registry listing; unparsable keys are dropped."""
    return Versions(listing.versions.keys())


def versions_from_references(references: Iterable[PackageReference]) -> Versions:
    return Versions(r.version for r in references if r.version)
