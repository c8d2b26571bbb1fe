"""Data models for package identity, manifests, closures and the canonical index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple

from .constants import VersionTokens


def _same_name(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").lower() == (b or "").lower()


@dataclass(frozen=True)
class PackageReference:
    """One concrete package version. Use PackageDependency for ranges.

    Equality and hashing look at (name, version) only. ``PackageReference.NONE``
    stands for "not found"; test it with ``found`` / ``not_found``.
    """

    name: Optional[str]
    version: Optional[str]
    scope: Optional[str] = field(default=None, compare=False)

    NONE: ClassVar["PackageReference"]

    @property
    def found(self) -> bool:
        return self.name is not None and self.version is not None

    @property
    def not_found(self) -> bool:
        return not self.found

    @property
    def full_name(self) -> Optional[str]:
        """Name including the scope, as written in manifests: ``@scope/name``."""
        if self.scope is None:
            return self.name
        return f"@{self.scope}/{self.name}"

    @property
    def moniker(self) -> str:
        return f"{self.full_name}@{self.version}"

    @property
    def npm_name(self) -> Optional[str]:
        """Name as it appears in scoped-registry URLs."""
        if self.scope is None:
            return self.name
        return f"@{self.scope}%2F{self.name}"

    @classmethod
    def parse(cls, reference: str) -> "PackageReference":
        """Parse ``name@version`` or ``@scope/name@version``; the version is optional."""
        scope = None
        if reference.startswith("@"):
            head, _, reference = reference.partition("/")
            scope = head[1:]
        name, sep, version = reference.partition("@")
        return cls(name, version if sep else None, scope)

    @classmethod
    def create(cls, name: Optional[str], version: Optional[str]) -> "PackageReference":
        """Reference for a manifest-style name, splitting off an ``@scope/`` prefix.

        Args:
            name: Package name as declared, e.g. ``acme.core`` or ``@acme/core``.
            version: Concrete version.

        Returns:
            The reference with ``scope`` set when the name carries one.
        """
        if name and name.startswith("@") and "/" in name:
            head, _, bare = name.partition("/")
            return cls(bare, version, head[1:] or None)
        return cls(name, version)

    def __str__(self) -> str:
        s = self.moniker
        if self.not_found:
            s += " (NOT FOUND)"
        return s

    def __iter__(self) -> Iterator[Optional[str]]:
        yield self.name
        yield self.version


PackageReference.NONE = PackageReference(None, None)


@dataclass(frozen=True)
class PackageDependency:
    """A package name with an unresolved version range, as declared in a manifest."""

    name: str
    range: Optional[str] = None  # 3.x, 3.1 - 3.3, 1.1 || 1.2, latest

    @property
    def is_latest(self) -> bool:
        return not self.range or self.range == VersionTokens.LATEST

    def __str__(self) -> str:
        shown = "(latest)" if not self.range else self.range
        return f"{self.name} {shown}"


# JSON key -> attribute, in write order
_MANIFEST_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("name", "name"),
    ("version", "version"),
    ("description", "description"),
    ("author", "author"),
    ("dependencies", "dependencies"),
    ("devDependencies", "dev_dependencies"),
    ("keywords", "keywords"),
    ("license", "license"),
    ("homepage", "homepage"),
    ("directories", "directories"),
    ("title", "title"),
    ("fhirVersions", "domain_versions"),
    ("fhir-version-list", "domain_version_list"),
    ("maintainers", "maintainers"),
    ("canonical", "canonical"),
    ("url", "url"),
    ("jurisdiction", "jurisdiction"),
)


@dataclass
class PackageManifest:
    """Declared identity and dependencies of a package or project (package.json)."""

    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    author: Any = None
    dependencies: Optional[Dict[str, str]] = None
    dev_dependencies: Optional[Dict[str, str]] = None
    keywords: Optional[List[str]] = None
    license: Optional[str] = None
    homepage: Optional[str] = None
    directories: Optional[Dict[str, str]] = None
    title: Optional[str] = None
    domain_versions: Optional[List[str]] = None
    domain_version_list: Optional[List[str]] = None
    maintainers: Optional[List[Dict[str, Any]]] = None
    canonical: Optional[str] = None
    url: Optional[str] = None
    jurisdiction: Optional[str] = None
    # Keys this model does not know about, kept so rewrites are lossless
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageManifest":
        known = {key for key, _ in _MANIFEST_FIELDS}
        kwargs = {attr: data.get(key) for key, attr in _MANIFEST_FIELDS}
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready mapping with null-valued fields omitted."""
        out: Dict[str, Any] = {}
        for key, attr in _MANIFEST_FIELDS:
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        for key, value in self.extra.items():
            if value is not None and key not in out:
                out[key] = value
        return out

    @property
    def package_reference(self) -> PackageReference:
        return PackageReference.create(self.name, self.version)

    @property
    def domain_version(self) -> Optional[str]:
        for versions in (self.domain_versions, self.domain_version_list):
            if versions:
                return versions[0]
        return None

    @domain_version.setter
    def domain_version(self, version: str) -> None:
        self.domain_versions = [version]

    def get_dependencies(self) -> List[PackageDependency]:
        if not self.dependencies:
            return []
        return [PackageDependency(name, rng) for name, rng in self.dependencies.items()]

    def _find_key(self, pkgname: str) -> Optional[str]:
        for key in self.dependencies or {}:
            if _same_name(key, pkgname):
                return key
        return None

    def add_dependency(self, name: str, version: Optional[str] = None) -> None:
        """Add or replace a dependency; a missing range means latest."""
        if self.dependencies is None:
            self.dependencies = {}
        key = self._find_key(name) or name
        self.dependencies[key] = version or VersionTokens.LATEST

    def has_dependency(self, pkgname: str) -> bool:
        return self._find_key(pkgname) is not None

    def remove_dependency(self, pkgname: str) -> bool:
        key = self._find_key(pkgname)
        if key is None:
            return False
        del self.dependencies[key]  # type: ignore[union-attr]
        return True


@dataclass
class PackageClosure:
    """Result of one restore: resolved references and unresolved dependencies."""

    references: List[PackageReference] = field(default_factory=list)
    missing: List[PackageDependency] = field(default_factory=list)
    # Version-level self cycles seen during restore; not persisted
    conflicts: List[Tuple[PackageDependency, PackageReference]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing

    def find(self, pkgname: str) -> Optional[PackageReference]:
        for reference in self.references:
            if _same_name(reference.full_name, pkgname):
                return reference
        return None

    def add(self, reference: PackageReference) -> bool:
        """Add a reference unless its name is already present (first wins)."""
        if self.find(reference.full_name) is not None:
            return False
        self.references.append(reference)
        return True

    def add_missing(self, dependency: PackageDependency) -> None:
        if dependency not in self.missing:
            self.missing.append(dependency)


@dataclass
class ResourceMetadata:
    """Index row for one file inside a package, as stored in the index file."""

    file_name: Optional[str] = None
    file_path: Optional[str] = None
    resource_type: Optional[str] = None
    id: Optional[str] = None
    canonical: Optional[str] = None
    version: Optional[str] = None
    kind: Optional[str] = None
    type: Optional[str] = None
    domain_version: Optional[str] = None
    has_snapshot: bool = False
    has_expansion: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceMetadata":
        return cls(
            file_name=data.get("filename"),
            file_path=data.get("filepath"),
            resource_type=data.get("resourceType"),
            id=data.get("id"),
            canonical=data.get("url"),
            version=data.get("version"),
            kind=data.get("kind"),
            type=data.get("type"),
            domain_version=data.get("fhirVersion"),
            has_snapshot=bool(data.get("hasSnapshot", data.get("firely-hasSnapshot", False))),
            has_expansion=bool(data.get("hasExpansion", data.get("firely-hasExpansion", False))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.file_name,
            "filepath": self.file_path,
            "resourceType": self.resource_type,
            "id": self.id,
            "url": self.canonical,
            "version": self.version,
            "kind": self.kind,
            "type": self.type,
            "fhirVersion": self.domain_version,
            "hasSnapshot": self.has_snapshot,
            "hasExpansion": self.has_expansion,
        }

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_path": self.file_path,
            "resource_type": self.resource_type,
            "id": self.id,
            "canonical": self.canonical,
            "version": self.version,
            "kind": self.kind,
            "type": self.type,
            "domain_version": self.domain_version,
            "has_snapshot": self.has_snapshot,
            "has_expansion": self.has_expansion,
        }


@dataclass
class PackageFileReference(ResourceMetadata):
    """Index row bound to the package owning it.

    ``package`` is ``PackageReference.NONE`` for files of the local project.
    """

    package: PackageReference = PackageReference.NONE

    @classmethod
    def from_metadata(cls, package: PackageReference, metadata: ResourceMetadata) -> "PackageFileReference":
        return cls(package=package, **metadata.metadata_fields())

    @property
    def is_local(self) -> bool:
        return self.package.not_found


@dataclass
class CanonicalIndex:
    """Per-package index file contents."""

    version: int = 0
    date: Optional[str] = None
    files: List[ResourceMetadata] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalIndex":
        return cls(
            version=int(data.get("index-version") or 0),
            date=data.get("date"),
            files=[ResourceMetadata.from_dict(f) for f in data.get("files") or [] if isinstance(f, dict)],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index-version": self.version,
            "date": self.date,
            "files": [f.to_dict() for f in self.files],
        }


@dataclass
class Dist:
    shasum: Optional[str] = None
    tarball: Optional[str] = None


@dataclass
class PackageRelease:
    """One version entry of a registry listing."""

    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    dist: Optional[Dist] = None
    domain_version: Optional[str] = None
    url: Optional[str] = None
    unlisted: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageRelease":
        dist = data.get("dist")
        unlisted = data.get("unlisted")
        return cls(
            name=data.get("name"),
            version=data.get("version"),
            description=data.get("description"),
            dist=Dist(dist.get("shasum"), dist.get("tarball")) if isinstance(dist, dict) else None,
            domain_version=data.get("fhirVersion"),
            url=data.get("url"),
            unlisted=None if unlisted is None else str(unlisted),
        )


@dataclass
class PackageListing:
    """Registry answer for a package name: metadata plus all published versions."""

    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    dist_tags: Dict[str, str] = field(default_factory=dict)
    versions: Dict[str, PackageRelease] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageListing":
        versions = data.get("versions")
        if not isinstance(versions, dict):
            versions = {}
        dist_tags = data.get("dist-tags")
        if not isinstance(dist_tags, dict):
            dist_tags = {}
        return cls(
            id=data.get("_id"),
            name=data.get("name"),
            description=data.get("description"),
            dist_tags={str(k): str(v) for k, v in dist_tags.items()},
            versions={
                str(key): PackageRelease.from_dict(value if isinstance(value, dict) else {})
                for key, value in versions.items()
            },
        )


@dataclass
class PackageCatalogEntry:
    name: Optional[str] = None
    description: Optional[str] = None
    domain_version: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageCatalogEntry":
        lowered = {str(k).lower(): v for k, v in data.items()}
        return cls(
            name=lowered.get("name"),
            description=lowered.get("description"),
            domain_version=lowered.get("fhirversion"),
        )


@dataclass
class PublishResult:
    """Outcome of a publish call; status_code 0 means the registry was unreachable."""

    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
