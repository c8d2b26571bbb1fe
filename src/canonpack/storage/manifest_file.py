"""Reading, writing and creating package.json manifests on disk."""

from __future__ import annotations

import logging
import os
import re
from typing import Optional

from ..constants import PackageConsts
from ..exceptions import ManifestError
from ..models import PackageManifest
from . import parser

logger = logging.getLogger(__name__)

_VALID_NAME = re.compile(r"^[^/\\\s]+$")


def read(path: str) -> Optional[PackageManifest]:
    """Parse the manifest at ``path``; None when the file does not exist."""
    if not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        return parser.read_manifest(f.read())


def read_from_folder(folder: str) -> Optional[PackageManifest]:
    return read(os.path.join(folder, PackageConsts.MANIFEST))


def write(manifest: PackageManifest, path: str, merge: bool = False) -> None:
    """Write ``manifest`` to ``path``, optionally merged over the existing file."""
    if merge and os.path.isfile(path):
        with open(path, "r", encoding="utf-8-sig") as f:
            content = parser.json_merge_manifest(manifest, f.read())
    else:
        content = parser.write_manifest(manifest)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(content)


def write_to_folder(manifest: PackageManifest, folder: str, merge: bool = False) -> None:
    write(manifest, os.path.join(folder, PackageConsts.MANIFEST), merge)


def valid_package_name(name: Optional[str]) -> bool:
    return bool(name) and _VALID_NAME.match(name) is not None


def clean_package_name(name: str) -> str:
    """Keep only characters that are safe in a package name."""
    return "".join(c for c in name if c.isascii() and (c.isalnum() or c in "._-"))


def create(name: str, domain_version: Optional[str] = None) -> PackageManifest:
    """A fresh manifest with default values."""
    if not valid_package_name(name):
        raise ManifestError(f"Invalid package name {name}")
    manifest = PackageManifest(
        name=name,
        description="Put a description here",
        version="0.1.0",
        dependencies={},
    )
    if domain_version:
        manifest.domain_version = domain_version
    return manifest


def read_or_create(folder: str, domain_version: Optional[str] = None) -> PackageManifest:
    manifest = read_from_folder(folder)
    if manifest is None:
        name = clean_package_name(os.path.basename(os.path.abspath(folder))) or "project"
        manifest = create(name, domain_version)
    return manifest
