"""Package cache on the local file system.

Layout: ``<root>/<name>#<version>/package/...`` plus a ``.index.json`` in each
``<name>#<version>`` folder. Installs are unpacked into a temporary sibling
folder and renamed into place, so a package folder that exists is complete.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import sys
import tempfile
import threading
from typing import Dict, Optional, Set

from ..archive.entries import FileEntry, all_files_to_pack, make_relative_path
from ..archive.packaging import create_package_from_entries, unpack_to_folder
from ..common.logging_utils import extra_context
from ..constants import Constants, PackageConsts
from ..exceptions import ManifestError
from ..models import CanonicalIndex, PackageManifest, PackageReference
from . import index_file, manifest_file
from .base import PackageCache
from .indexer import MetadataExtractor, json_resource_metadata

logger = logging.getLogger(__name__)

_LEGACY_FOLDER = re.compile(r"^(?P<name>.+?)-(?P<version>\d+\.\d+.*)$")


def generic_data_location() -> str:
    """Per-user data directory of the current platform."""
    home = os.path.expanduser("~")
    if sys.platform.startswith("win"):
        return os.environ.get("USERPROFILE", home)
    if sys.platform == "darwin":
        return os.environ.get("HOME", home)
    return os.path.join(os.environ.get("HOME", home), ".local", "share")


def default_cache_root() -> str:
    if Constants.CACHE_ROOT:
        return Constants.CACHE_ROOT
    return os.path.join(generic_data_location(), ".fhir", "packages")


def package_folder_name(reference: PackageReference, glue: str = "#") -> str:
    """Folder of a package inside the cache root.

    Scoped names use their URL form (``@acme%2Fcore#1.0.0``) so the folder
    stays a direct child of the root.
    """
    return f"{reference.npm_name}{glue}{reference.version}"


def parse_package_folder_name(entry: str) -> Optional[PackageReference]:
    """Inverse of package_folder_name; also accepts legacy ``name-version``."""
    if "#" in entry:
        name, _, version = entry.partition("#")
        if not name or not version:
            return None
        return PackageReference.create(name.replace("%2F", "/").replace("%2f", "/"), version)
    m = _LEGACY_FOLDER.match(entry)
    if m:
        return PackageReference(m.group("name"), m.group("version"))
    return None


class DiskPackageCache(PackageCache):
    """File-system package cache shared by every project of the user."""

    def __init__(self, root: Optional[str] = None, extractor: MetadataExtractor = json_resource_metadata):
        self.root = root or default_cache_root()
        self._extractor = extractor
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def __repr__(self) -> str:
        return f"DiskPackageCache({self.root!r})"

    def package_root_folder(self, reference: PackageReference) -> str:
        return os.path.join(self.root, package_folder_name(reference))

    def package_content_folder(self, reference: PackageReference) -> str:
        return os.path.join(self.package_root_folder(reference), PackageConsts.PACKAGE_FOLDER)

    def _lock_for(self, reference: PackageReference) -> threading.Lock:
        key = package_folder_name(reference).lower()
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def is_installed(self, reference: PackageReference) -> bool:
        if reference.not_found:
            return False
        return os.path.isdir(self.package_root_folder(reference))

    def install(self, reference: PackageReference, buffer: bytes) -> None:
        """Unpack and index the archive; a present package is left untouched."""
        target = self.package_root_folder(reference)
        with self._lock_for(reference):
            if os.path.isdir(target):
                logger.debug("%s already installed", reference)
                return
            os.makedirs(self.root, exist_ok=True)
            staging = tempfile.mkdtemp(prefix=f".{package_folder_name(reference)}.", dir=self.root)
            try:
                unpack_to_folder(buffer, staging)
                index_file.create(staging, recurse=True, extractor=self._extractor)
                try:
                    os.rename(staging, target)
                except OSError:
                    # Another process won the race; its copy is equivalent
                    if not os.path.isdir(target):
                        raise
                    logger.debug("%s was installed concurrently; discarding copy", reference)
            finally:
                if os.path.isdir(staging):
                    shutil.rmtree(staging, ignore_errors=True)
        logger.info(
            "Installed %s",
            reference,
            extra=extra_context(event="install", component="disk_cache", target=target),
        )

    def read_manifest(self, reference: PackageReference) -> Optional[PackageManifest]:
        folder = self.package_content_folder(reference)
        if not os.path.isdir(folder):
            return None
        try:
            return manifest_file.read_from_folder(folder)
        except ManifestError as e:
            logger.warning("Unreadable manifest in %s: %s", reference, e)
            return None

    def get_canonical_index(self, reference: PackageReference) -> Optional[CanonicalIndex]:
        if not self.is_installed(reference):
            return None
        return index_file.get_from_folder(self.package_root_folder(reference), recurse=True, extractor=self._extractor)

    def _resolve_inside(self, folder: str, filename: str) -> Optional[str]:
        root = os.path.realpath(folder)
        path = os.path.realpath(os.path.join(root, filename))
        if os.path.commonpath([root, path]) != root or not os.path.isfile(path):
            return None
        return path

    def get_file_content(self, reference: PackageReference, filename: str) -> Optional[bytes]:
        """Content by path relative to the package folder or its ``package/`` subfolder."""
        for folder in (self.package_root_folder(reference), self.package_content_folder(reference)):
            path = self._resolve_inside(folder, filename)
            if path is not None:
                with open(path, "rb") as f:
                    return f.read()
        logger.debug("File %s not found in %s", filename, reference)
        return None

    def list_installed(self) -> Set[PackageReference]:
        if not os.path.isdir(self.root):
            return set()
        references = set()
        for entry in os.listdir(self.root):
            if entry.startswith(".") or not os.path.isdir(os.path.join(self.root, entry)):
                continue
            reference = parse_package_folder_name(entry)
            if reference is not None:
                references.add(reference)
        return references

    def get_package(self, reference: PackageReference) -> Optional[bytes]:
        """Re-pack an installed package."""
        if not self.is_installed(reference):
            return None
        folder = self.package_root_folder(reference)
        entries = []
        for path in all_files_to_pack(folder):
            if os.path.basename(path) == PackageConsts.CANONICAL_INDEX_FILE:
                continue
            with open(path, "rb") as f:
                entries.append(FileEntry(make_relative_path(path, folder), f.read()))
        return create_package_from_entries(entries)
