"""In-memory package cache, for tests and short-lived tooling."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Set

from ..archive.entries import FileEntry, normalize_path
from ..archive.packaging import MANIFEST_PATH, create_package_from_entries, unpack
from ..constants import PackageConsts
from ..exceptions import ManifestError
from ..models import CanonicalIndex, PackageManifest, PackageReference, ResourceMetadata
from . import parser
from .base import PackageCache
from .indexer import MetadataExtractor, json_resource_metadata

logger = logging.getLogger(__name__)


@dataclass
class _Installed:
    files: Dict[str, bytes]
    index: Optional[CanonicalIndex] = None
    installed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MemoryPackageCache(PackageCache):
    """Dict-backed PackageCache holding unpacked archive entries."""

    def __init__(self, extractor: MetadataExtractor = json_resource_metadata):
        self._packages: Dict[PackageReference, _Installed] = {}
        self._extractor = extractor
        self._lock = threading.Lock()

    def _get(self, reference: PackageReference) -> Optional[_Installed]:
        with self._lock:
            return self._packages.get(reference)

    def is_installed(self, reference: PackageReference) -> bool:
        return reference.found and self._get(reference) is not None

    def install(self, reference: PackageReference, buffer: bytes) -> None:
        files = {normalize_path(e.file_path): e.buffer for e in unpack(buffer)}
        with self._lock:
            # Overwrite keeps install idempotent
            self._packages[reference] = _Installed(files)
        logger.debug("Installed %s in memory (%d files)", reference, len(files))

    def read_manifest(self, reference: PackageReference) -> Optional[PackageManifest]:
        installed = self._get(reference)
        if installed is None or MANIFEST_PATH not in installed.files:
            return None
        try:
            return parser.read_manifest(installed.files[MANIFEST_PATH])
        except ManifestError as e:
            logger.warning("Unreadable manifest in %s: %s", reference, e)
            return None

    def _build_index(self, files: Dict[str, bytes]) -> CanonicalIndex:
        rows = []
        for path, content in sorted(files.items()):
            name = path.rsplit("/", 1)[-1]
            row = ResourceMetadata(file_name=name, file_path=path)
            for key, value in (self._extractor(name, content) or {}).items():
                setattr(row, key, value)
            rows.append(row)
        return CanonicalIndex(
            version=PackageConsts.INDEX_VERSION,
            date=datetime.now(timezone.utc).isoformat(),
            files=rows,
        )

    def get_canonical_index(self, reference: PackageReference) -> Optional[CanonicalIndex]:
        installed = self._get(reference)
        if installed is None:
            return None
        if installed.index is None:
            installed.index = self._build_index(installed.files)
        return installed.index

    def get_file_content(self, reference: PackageReference, filename: str) -> Optional[bytes]:
        installed = self._get(reference)
        if installed is None:
            return None
        path = normalize_path(filename)
        return installed.files.get(path, installed.files.get(f"{PackageConsts.PACKAGE_FOLDER}/{path}"))

    def list_installed(self) -> Set[PackageReference]:
        with self._lock:
            return set(self._packages)

    def get_package(self, reference: PackageReference) -> Optional[bytes]:
        installed = self._get(reference)
        if installed is None:
            return None
        return create_package_from_entries(FileEntry(p, b) for p, b in installed.files.items())
