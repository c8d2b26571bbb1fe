"""Tests for the resolution context and its file lookups."""

import json
from unittest.mock import patch

import pytest

from canonpack.archive.entries import FileEntry
from canonpack.context import PackageContext
from canonpack.exceptions import (
    CanonpackError,
    ConflictingArtifactsError,
    FileContentNotFoundError,
    PackageNotFoundError,
)
from canonpack.models import PackageDependency, PackageReference
from canonpack.storage import project_ops
from canonpack.storage.disk_cache import DiskPackageCache
from canonpack.storage.folder_project import FolderProject
from canonpack.storage.memory_cache import MemoryPackageCache

SHARED = "http://acme.org/sd/shared"


def _resource(resource_type, id, url, **extra):
    return json.dumps(dict(resourceType=resource_type, id=id, url=url, **extra)).encode("utf-8")


@pytest.fixture
def server(fake_server):
    fake_server.add(
        "acme.core", "1.0.0",
        files=[
            FileEntry("StructureDefinition-core.json", _resource("StructureDefinition", "core", "http://acme.org/sd/core")),
            FileEntry("StructureDefinition-shared.json", _resource("StructureDefinition", "shared", SHARED)),
        ],
        domain_version="4.0.1",
    )
    fake_server.add(
        "acme.extra", "1.0.0",
        files=[FileEntry("StructureDefinition-shared.json", _resource("StructureDefinition", "shared", SHARED))],
    )
    return fake_server


@pytest.fixture
def project(tmp_path):
    folder = tmp_path / "project"
    folder.mkdir()
    (folder / "local.json").write_bytes(_resource("ValueSet", "local", "http://acme.org/vs/local"))
    project = FolderProject(str(folder))
    project_ops.init_project(project, "my.project")
    project_ops.add_dependency(project, PackageDependency("acme.core", "1.0.0"))
    project_ops.add_dependency(project, PackageDependency("acme.extra", "1.0.0"))
    return project


@pytest.fixture
def context(project, server):
    context = PackageContext(MemoryPackageCache(), project, server)
    context.restore()
    return context


class TestIndexLifecycle:
    """Building and invalidating the index."""

    def test_build_index_requires_lock_file(self, tmp_path, server):
        """Without a restore there is nothing to index."""
        context = PackageContext(MemoryPackageCache(), FolderProject(str(tmp_path)), server)

        with pytest.raises(CanonpackError):
            context.index()

    def test_index_is_kept_until_restore(self, context):
        """The index is built once and dropped by restore."""
        first = context.index()

        assert context.index() is first
        context.restore()
        assert context.index() is not first

    def test_invalidate_index(self, context):
        """Explicit invalidation forces a rebuild."""
        first = context.index()

        context.invalidate_index()

        assert context.index() is not first


class TestLookups:
    """File lookups through the index."""

    def test_by_canonical_from_package(self, context):
        """Package files are read from the cache."""
        content = context.get_file_content_by_canonical("http://acme.org/sd/core")

        assert json.loads(content)["id"] == "core"

    def test_by_canonical_from_project(self, context):
        """Local files are read from the project."""
        reference = context.get_file_reference_by_canonical("http://acme.org/vs/local")

        assert reference.is_local
        assert json.loads(context.get_file_content(reference))["id"] == "local"

    def test_duplicate_canonical(self, context):
        """Plain lookup takes the first package; best candidate finds no authority."""
        first = context.get_file_reference_by_canonical(SHARED)

        assert first.package == PackageReference("acme.core", "1.0.0")
        assert context.get_file_reference_by_canonical(SHARED, resolve_best_candidate=True) is None
        assert context.get_file_content_by_canonical(SHARED, resolve_best_candidate=True) is None

    def test_conflicting_snapshots_raise(self, tmp_path, fake_server):
        """Two packages with snapshots for one canonical conflict."""
        sd = _resource("StructureDefinition", "x", SHARED, snapshot={"element": []})
        fake_server.add("p1", "1.0.0", files=[FileEntry("sd.json", sd)])
        fake_server.add("p2", "1.0.0", files=[FileEntry("sd.json", sd)])
        project = FolderProject(str(tmp_path))
        project_ops.init_project(project, "my.project")
        project_ops.add_dependency(project, PackageDependency("p1", "1.0.0"))
        project_ops.add_dependency(project, PackageDependency("p2", "1.0.0"))
        context = PackageContext(MemoryPackageCache(), project, fake_server)
        context.restore()

        with pytest.raises(ConflictingArtifactsError):
            context.get_file_content_by_canonical(SHARED, resolve_best_candidate=True)

    def test_by_id_name_and_path(self, context):
        """Other finders return file contents or None."""
        assert json.loads(context.get_file_content_by_id("StructureDefinition", "core"))["id"] == "core"
        assert context.get_file_content_by_file_name("local.json") is not None
        assert context.get_file_content_by_file_path("package/StructureDefinition-core.json") is not None
        assert context.get_file_content_by_id("StructureDefinition", "nope") is None

    def test_file_names(self, context):
        """File names cover the project and every package."""
        names = context.get_file_names()

        assert "local.json" in names
        assert "StructureDefinition-core.json" in names
        assert names.index("local.json") < names.index("StructureDefinition-core.json")

    def test_read_all_files(self, context):
        """Every indexed file can be read."""
        contents = list(context.read_all_files())

        assert len(contents) == len(context.index())

    def test_read_all_files_with_missing_content(self, context):
        """A file listed in the index but gone from the cache raises."""
        with patch.object(context.cache, "get_file_content", return_value=None):
            with pytest.raises(FileContentNotFoundError):
                list(context.read_all_files())


class TestInstallDependency:
    """Adding dependencies through the context."""

    def test_creates_manifest_from_package_domain_version(self, tmp_path, server):
        """A project without manifest gets one named 'project'."""
        project = FolderProject(str(tmp_path))
        context = PackageContext(MemoryPackageCache(), project, server)

        result = context.install_dependency(PackageDependency("acme.core", "^1.0.0"))

        manifest = project.read_manifest()
        assert result.reference == PackageReference("acme.core", "1.0.0")
        assert result.closure.references == [PackageReference("acme.core", "1.0.0")]
        assert manifest.name == "project"
        assert manifest.domain_version == "4.0.1"
        assert manifest.dependencies == {"acme.core": "^1.0.0"}

    def test_unknown_package_raises(self, tmp_path, server):
        """Direct installs of unknown packages fail loudly."""
        context = PackageContext(MemoryPackageCache(), FolderProject(str(tmp_path)), server)

        with pytest.raises(PackageNotFoundError):
            context.install_dependency(PackageDependency("ghost.pkg"))
        assert not project_ops.has_manifest(context.project)

    def test_ensure_manifest_keeps_existing(self, project, server):
        """An existing manifest is left as it is."""
        context = PackageContext(MemoryPackageCache(), project, server)

        context.ensure_manifest("other-name", "3.0.2")

        assert project.read_manifest().name == "my.project"


class TestDiskBackedContext:
    """The same flow against the file-system cache."""

    def test_restore_and_lookup(self, tmp_path, project, server):
        """Packages restored to disk are found through the index."""
        context = PackageContext(DiskPackageCache(str(tmp_path / "cache")), project, server)

        closure = context.restore()

        assert closure.complete
        assert (tmp_path / "cache" / "acme.core#1.0.0" / ".index.json").is_file()
        assert json.loads(context.get_file_content_by_canonical("http://acme.org/sd/core"))["id"] == "core"
