"""Archive codec: gzip+tar packages with a normalized ``package/`` layout."""

from .checksum import hash_to_hex_string, sha_sum, shasum_hex, verify_shasum
from .entries import FileEntry, organize_to_package_structure
from .packaging import (
    create_package,
    extract_manifest,
    extract_manifest_from_package_file,
    extract_matching,
    pack_folder,
    unpack,
    unpack_to_folder,
)

__all__ = [
    "FileEntry",
    "create_package",
    "extract_manifest",
    "extract_manifest_from_package_file",
    "extract_matching",
    "hash_to_hex_string",
    "organize_to_package_structure",
    "pack_folder",
    "sha_sum",
    "shasum_hex",
    "unpack",
    "unpack_to_folder",
    "verify_shasum",
]
