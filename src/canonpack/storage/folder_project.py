"""A project rooted in a local folder."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from ..models import PackageClosure, PackageManifest, ResourceMetadata
from . import lock_file, manifest_file
from .base import Project
from .indexer import MetadataExtractor, index_folder, json_resource_metadata

logger = logging.getLogger(__name__)


class FolderProject(Project):
    """Manifest, lock file and resources living in one folder."""

    def __init__(self, folder: str, extractor: MetadataExtractor = json_resource_metadata):
        self.folder = folder
        self._extractor = extractor

    def __repr__(self) -> str:
        return f"FolderProject({self.folder!r})"

    def read_manifest(self) -> Optional[PackageManifest]:
        return manifest_file.read_from_folder(self.folder)

    def write_manifest(self, manifest: PackageManifest) -> None:
        # Merge so keys this model does not cover survive the rewrite
        os.makedirs(self.folder, exist_ok=True)
        manifest_file.write_to_folder(manifest, self.folder, merge=True)

    def read_closure(self) -> Optional[PackageClosure]:
        return lock_file.read_from_folder(self.folder)

    def write_closure(self, closure: PackageClosure) -> None:
        os.makedirs(self.folder, exist_ok=True)
        lock_file.write_to_folder(closure, self.folder)

    def get_file_content(self, filename: str) -> Optional[bytes]:
        root = os.path.realpath(self.folder)
        path = os.path.realpath(os.path.join(root, filename))
        if os.path.commonpath([root, path]) != root or not os.path.isfile(path):
            return None
        with open(path, "rb") as f:
            return f.read()

    def get_index(self) -> List[ResourceMetadata]:
        if not os.path.isdir(self.folder):
            return []
        return index_folder(self.folder, recurse=False, extractor=self._extractor)
