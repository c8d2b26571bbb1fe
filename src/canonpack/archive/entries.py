"""In-memory file entries and the default package layout policy."""

from __future__ import annotations

import os
import posixpath
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List

from ..constants import PackageConsts

_SEPARATORS = re.compile(r"[\\/]+")


def normalize_path(path: str) -> str:
    """Forward slashes only, no leading ``./``, whatever the host platform."""
    path = _SEPARATORS.sub("/", path)
    while path.startswith("./"):
        path = path[2:]
    return path


@dataclass
class FileEntry:
    """A relative path and the raw bytes stored at that path."""

    file_path: str
    buffer: bytes = b""

    @property
    def file_name(self) -> str:
        return normalize_path(self.file_path).rsplit("/", 1)[-1]

    def match(self, filename: str) -> bool:
        return self.file_name.lower() == filename.lower()

    def has_extension(self, *extensions: str) -> bool:
        extension = posixpath.splitext(self.file_name)[1].lower()
        return any(extension == ext.lower() for ext in extensions)


# A placement function decides where an entry lives inside the archive
Organizer = Callable[[FileEntry], FileEntry]


def change_folder(entry: FileEntry, folder: str) -> FileEntry:
    """Move the entry directly under ``folder``, dropping its own directories."""
    return FileEntry(posixpath.join(normalize_path(folder), entry.file_name), entry.buffer)


def make_relative_path(path: str, root: str) -> str:
    """Path relative to ``root``, computed on normalized strings so that
    Windows-style input gives the same answer on every host."""
    norm_path = normalize_path(path)
    norm_root = normalize_path(root).rstrip("/") + "/"
    if norm_path.lower().startswith(norm_root.lower()):
        return norm_path[len(norm_root):]
    return normalize_path(os.path.relpath(path, root))


def make_entry_relative(entry: FileEntry, root: str) -> FileEntry:
    return FileEntry(make_relative_path(entry.file_path, root), entry.buffer)


def organize_to_package_structure(entry: FileEntry) -> FileEntry:
    """Default layout: the manifest and structured documents go to the package
    folder, everything else to its ``other`` subfolder. Callers may pass their
    own placement function instead."""
    if entry.match(PackageConsts.MANIFEST) or entry.has_extension(".xml", ".json"):
        return change_folder(entry, PackageConsts.PACKAGE_FOLDER)
    return change_folder(entry, posixpath.join(PackageConsts.PACKAGE_FOLDER, PackageConsts.OTHER_FOLDER))


def place_under_root(entry: FileEntry, root: str = PackageConsts.PACKAGE_FOLDER) -> FileEntry:
    """Prefix the entry path with the archive root unless it already starts there."""
    path = normalize_path(entry.file_path).lstrip("/")
    if path == root or path.startswith(root + "/"):
        return FileEntry(path, entry.buffer)
    return FileEntry(posixpath.join(root, path), entry.buffer)


def read_file_entry(filepath: str) -> FileEntry:
    with open(filepath, "rb") as f:
        return FileEntry(filepath, f.read())


def all_files_to_pack(folder: str) -> List[str]:
    paths = []
    for dirpath, dirnames, filenames in os.walk(folder):
        dirnames.sort()
        for filename in sorted(filenames):
            paths.append(os.path.join(dirpath, filename))
    return paths


def read_all_files_to_pack(folder: str) -> Iterator[FileEntry]:
    for path in all_files_to_pack(folder):
        yield read_file_entry(path)


def organize(entries: Iterable[FileEntry], root: str, organizer: Organizer) -> Iterator[FileEntry]:
    for entry in entries:
        yield organizer(make_entry_relative(entry, root))
