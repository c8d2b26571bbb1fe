"""gzip-compressed tar primitives.

Reading is done in streaming mode so a caller looking for one entry (the
manifest) stops decompressing as soon as it has it.
"""

from __future__ import annotations

import gzip
import io
import logging
import os
import tarfile
from typing import BinaryIO, Callable, Iterable, Iterator, Union

from .entries import FileEntry, normalize_path

logger = logging.getLogger(__name__)

Source = Union[bytes, str, BinaryIO]


def path_match(path_a: str, path_b: str) -> bool:
    return normalize_path(path_a) == normalize_path(path_b)


def write_entry(tar: tarfile.TarFile, entry: FileEntry) -> None:
    info = tarfile.TarInfo(name=normalize_path(entry.file_path))
    info.size = len(entry.buffer)
    info.mode = 0o644
    tar.addfile(info, io.BytesIO(entry.buffer))


def write_entries(tar: tarfile.TarFile, entries: Iterable[FileEntry]) -> None:
    for entry in entries:
        write_entry(tar, entry)


def pack_to_stream(entries: Iterable[FileEntry], stream: BinaryIO) -> None:
    with tarfile.open(fileobj=stream, mode="w:gz") as tar:
        write_entries(tar, entries)


def pack(entries: Iterable[FileEntry]) -> bytes:
    buffer = io.BytesIO()
    pack_to_stream(entries, buffer)
    return buffer.getvalue()


def pack_to_disk(path: str, entries: Iterable[FileEntry]) -> str:
    """Write ``path`` as a .tgz (suffix added when missing) and return its path."""
    package_file = path if path.endswith((".tgz", ".tar.gz")) else path + ".tgz"
    with open(package_file, "wb") as f:
        pack_to_stream(entries, f)
    return package_file


def _open_stream(source: Source) -> BinaryIO:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source)
    if isinstance(source, str):
        return open(source, "rb")
    return source


def extract_files(source: Source, predicate: Callable[[str], bool]) -> Iterator[FileEntry]:
    """Yield the regular files whose archive path satisfies ``predicate``."""
    stream = _open_stream(source)
    try:
        with tarfile.open(fileobj=stream, mode="r|gz") as tar:
            for member in tar:
                if not member.isfile() or not predicate(member.name):
                    continue
                handle = tar.extractfile(member)
                data = handle.read() if handle is not None else b""
                yield FileEntry(member.name, data)
    finally:
        if stream is not source:
            stream.close()


def extract_matching_files(source: Source, match: str) -> Iterator[FileEntry]:
    return extract_files(source, lambda name: path_match(name, match))


def unzip(buffer: bytes) -> bytes:
    return gzip.decompress(buffer)


def _target_path(folder: str, name: str) -> str:
    root = os.path.realpath(folder)
    target = os.path.realpath(os.path.join(root, *normalize_path(name).split("/")))
    if os.path.commonpath([root, target]) != root:
        raise tarfile.TarError(f"Archive entry {name!r} escapes the target folder")
    return target


def extract_to_folder(buffer: bytes, folder: str) -> int:
    """Write every regular file of the archive below ``folder``.

    Links and special files are skipped. Returns the number of files written.
    """
    os.makedirs(folder, exist_ok=True)
    count = 0
    for entry in extract_files(buffer, lambda _: True):
        target = _target_path(folder, entry.file_path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as f:
            f.write(entry.buffer)
        count += 1
    logger.debug("Extracted %d files to %s", count, folder)
    return count
