"""Package-level pack and unpack built on the tar primitives.

Every archive path lives under the ``package/`` root and the manifest sits at
``package/package.json``.
"""

from __future__ import annotations

import logging
import posixpath
from contextlib import closing
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from ..constants import PackageConsts
from ..models import PackageManifest
from ..storage import parser
from . import tar
from .entries import (
    FileEntry,
    Organizer,
    organize,
    organize_to_package_structure,
    place_under_root,
    read_all_files_to_pack,
)

logger = logging.getLogger(__name__)

MANIFEST_PATH = posixpath.join(PackageConsts.PACKAGE_FOLDER, PackageConsts.MANIFEST)


def manifest_to_bytes(manifest: PackageManifest) -> bytes:
    return parser.write_manifest(manifest).encode("utf-8")


def manifest_to_file_entry(manifest: PackageManifest) -> FileEntry:
    return FileEntry(MANIFEST_PATH, manifest_to_bytes(manifest))


def create_package(manifest: PackageManifest, entries: Iterable[FileEntry]) -> bytes:
    """Pack the manifest plus ``entries``, each placed under the package root."""
    others = (place_under_root(e) for e in entries)
    return tar.pack(_with_manifest(manifest_to_file_entry(manifest), others))


def _with_manifest(manifest_entry: FileEntry, others: Iterable[FileEntry]) -> Iterator[FileEntry]:
    yield manifest_entry
    yield from others


def create_package_from_entries(entries: Iterable[FileEntry]) -> bytes:
    return tar.pack(place_under_root(e) for e in entries)


def pack_folder(name: str, folder: str, organizer: Organizer = organize_to_package_structure) -> str:
    """Pack every file below ``folder`` into ``<name>.tgz`` and return its path.

    ``organizer`` decides where each file lands; the default moves documents to
    the package root and everything else to ``package/other``.
    """
    files = organize(read_all_files_to_pack(folder), folder, organizer)
    path = tar.pack_to_disk(name, (place_under_root(f) for f in files))
    logger.info("Packed %s into %s", folder, path)
    return path


def unpack(buffer: bytes) -> Iterator[FileEntry]:
    return tar.extract_files(buffer, lambda _: True)


def extract_matching(buffer: bytes, predicate: Callable[[str], bool]) -> Iterator[FileEntry]:
    return tar.extract_files(buffer, predicate)


def _first_manifest(source) -> Optional[PackageManifest]:
    with closing(tar.extract_matching_files(source, MANIFEST_PATH)) as matches:
        entry = next(matches, None)
    if entry is None:
        return None
    return parser.read_manifest(entry.buffer)


def extract_manifest(buffer: bytes) -> Optional[PackageManifest]:
    """Read only the manifest out of an archive, without unpacking the rest."""
    return _first_manifest(buffer)


def extract_manifest_from_package_file(path: str) -> Optional[PackageManifest]:
    return _first_manifest(path)


def unpack_to_folder(buffer: bytes, folder: str) -> None:
    tar.extract_to_folder(buffer, folder)


def package_summary(entries: Iterable[FileEntry]) -> Tuple[PackageManifest, List[str]]:
    """Split entries into the parsed manifest and the list of other file paths."""
    manifest = PackageManifest()
    files = []
    for entry in entries:
        if entry.file_name == PackageConsts.MANIFEST:
            manifest = parser.read_manifest(entry.buffer)
        else:
            files.append(entry.file_path)
    return manifest, files
