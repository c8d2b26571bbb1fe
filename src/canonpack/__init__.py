"""canonpack: resolve, fetch, cache and index packages of canonical documents."""

from .context import InstallResult, PackageContext
from .exceptions import (
    CanonpackError,
    ConflictingArtifactsError,
    FileContentNotFoundError,
    ManifestError,
    PackageNotFoundError,
)
from .index import FileIndex
from .models import (
    PackageClosure,
    PackageDependency,
    PackageFileReference,
    PackageManifest,
    PackageReference,
)
from .registry import RegistryClient, create_url_provider
from .storage.disk_cache import DiskPackageCache
from .storage.folder_project import FolderProject
from .storage.memory_cache import MemoryPackageCache
from .versioning import Versions

__all__ = [
    "CanonpackError",
    "ConflictingArtifactsError",
    "DiskPackageCache",
    "FileContentNotFoundError",
    "FileIndex",
    "FolderProject",
    "InstallResult",
    "ManifestError",
    "MemoryPackageCache",
    "PackageClosure",
    "PackageContext",
    "PackageDependency",
    "PackageFileReference",
    "PackageManifest",
    "PackageNotFoundError",
    "PackageReference",
    "RegistryClient",
    "Versions",
    "create_url_provider",
]
