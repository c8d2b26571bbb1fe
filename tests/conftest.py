"""Shared fixtures: package archives built in memory and a fake registry."""

from typing import Dict, Iterable, Optional, Set

import pytest
import requests

from canonpack.archive.entries import FileEntry
from canonpack.archive.packaging import create_package
from canonpack.models import PackageManifest, PackageReference
from canonpack.storage.base import PackageServer
from canonpack.versioning.versions import Versions


def build_package(
    name: str,
    version: str,
    dependencies: Optional[Dict[str, str]] = None,
    files: Iterable[FileEntry] = (),
    domain_version: Optional[str] = None,
) -> bytes:
    manifest = PackageManifest(name=name, version=version, dependencies=dependencies or {})
    if domain_version:
        manifest.domain_version = domain_version
    return create_package(manifest, files)


class FakeServer(PackageServer):
    """In-memory registry recording every archive request."""

    def __init__(self) -> None:
        self.packages: Dict[str, Dict[str, bytes]] = {}
        self.broken: Set[str] = set()
        self.requested = []

    def add(self, name: str, version: str, **kwargs) -> bytes:
        buffer = build_package(name, version, **kwargs)
        self.packages.setdefault(name, {})[version] = buffer
        return buffer

    def get_versions(self, name: str) -> Versions:
        return Versions(self.packages.get(name, {}).keys())

    def get_package(self, reference: PackageReference) -> Optional[bytes]:
        self.requested.append(reference)
        if reference.name in self.broken:
            raise requests.ConnectionError(f"{reference.name} is unreachable")
        return self.packages.get(reference.name, {}).get(reference.version)


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def make_package():
    return build_package
