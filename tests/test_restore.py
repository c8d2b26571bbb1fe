"""Tests for transitive restore."""

from unittest.mock import patch

import requests

from canonpack.archive.entries import FileEntry
from canonpack.archive.packaging import create_package_from_entries
from canonpack.context import PackageContext
from canonpack.models import PackageDependency, PackageReference
from canonpack.storage import project_ops
from canonpack.storage.folder_project import FolderProject
from canonpack.storage.memory_cache import MemoryPackageCache


def _context(tmp_path, server, dependencies, report=None):
    project = FolderProject(str(tmp_path))
    project_ops.init_project(project, "my.project")
    for name, range_ in dependencies.items():
        project_ops.add_dependency(project, PackageDependency(name, range_))
    return PackageContext(MemoryPackageCache(), project, server, report=report)


class TestRestore:
    """Closure building against a registry."""

    def test_resolves_highest_matching_version(self, tmp_path, fake_server):
        """^1.0.0 against 0.9.0, 1.0.0 and 1.1.0 installs 1.1.0."""
        for version in ("0.9.0", "1.0.0", "1.1.0"):
            fake_server.add("acme.core", version)
        context = _context(tmp_path, fake_server, {"acme.core": "^1.0.0"})

        closure = context.restore()

        assert closure.references == [PackageReference("acme.core", "1.1.0")]
        assert closure.missing == []
        assert context.cache.is_installed(PackageReference("acme.core", "1.1.0"))

    def test_unknown_package_is_missing(self, tmp_path, fake_server):
        """A package the registry does not know ends up in missing."""
        context = _context(tmp_path, fake_server, {"ghost.pkg": "1.0.0"})

        closure = context.restore()

        assert closure.references == []
        assert closure.missing == [PackageDependency("ghost.pkg", "1.0.0")]
        assert not closure.complete

    def test_transitive_dependencies_in_depth_first_order(self, tmp_path, fake_server):
        """Dependencies of dependencies are restored right after their parent."""
        fake_server.add("a", "1.0.0", dependencies={"b": "^2.0.0"})
        fake_server.add("b", "2.1.0", dependencies={"c": "latest"})
        fake_server.add("c", "0.1.0")
        fake_server.add("d", "1.0.0")
        context = _context(tmp_path, fake_server, {"a": "1.0.0", "d": "1.0.0"})

        closure = context.restore()

        assert [r.name for r in closure.references] == ["a", "b", "c", "d"]

    def test_diamond_reuses_first_resolution(self, tmp_path, fake_server):
        """A name resolved once is neither re-resolved nor fetched again."""
        fake_server.add("a", "1.0.0", dependencies={"c": "^1.0.0"})
        fake_server.add("b", "1.0.0", dependencies={"c": "^2.0.0"})
        fake_server.add("c", "1.0.0")
        fake_server.add("c", "2.0.0")
        context = _context(tmp_path, fake_server, {"a": "1.0.0", "b": "1.0.0"})

        closure = context.restore()

        assert closure.references == [
            PackageReference("a", "1.0.0"),
            PackageReference("c", "1.0.0"),
            PackageReference("b", "1.0.0"),
        ]
        assert [r.name for r in fake_server.requested].count("c") == 1

    def test_name_cycle_terminates(self, tmp_path, fake_server):
        """Two packages depending on each other expand once each."""
        fake_server.add("a", "1.0.0", dependencies={"b": "1.0.0"})
        fake_server.add("b", "1.0.0", dependencies={"a": "1.0.0"})
        context = _context(tmp_path, fake_server, {"a": "1.0.0"})

        closure = context.restore()

        assert [r.name for r in closure.references] == ["a", "b"]

    def test_self_dependency_is_recorded_as_conflict(self, tmp_path, fake_server):
        """A package depending on its own name is flagged and not followed."""
        fake_server.add("a", "1.0.0", dependencies={"a": "2.0.0"})
        fake_server.add("a", "2.0.0")
        context = _context(tmp_path, fake_server, {"a": "1.0.0"})

        closure = context.restore()

        assert closure.references == [PackageReference("a", "1.0.0")]
        assert closure.conflicts == [(PackageDependency("a", "2.0.0"), PackageReference("a", "1.0.0"))]
        assert closure.missing == []

    def test_fetch_failure_is_missing_not_fatal(self, tmp_path, fake_server):
        """A transport error for one package does not stop the others."""
        fake_server.add("flaky", "1.0.0")
        fake_server.add("ok", "1.0.0")
        fake_server.broken.add("flaky")
        context = _context(tmp_path, fake_server, {"flaky": "1.0.0", "ok": "1.0.0"})

        closure = context.restore()

        assert closure.references == [PackageReference("ok", "1.0.0")]
        assert closure.missing == [PackageDependency("flaky", "1.0.0")]

    def test_corrupt_archive_is_missing(self, tmp_path, fake_server):
        """An archive that cannot be unpacked counts as missing."""
        fake_server.packages["bad"] = {"1.0.0": b"not a tarball"}
        context = _context(tmp_path, fake_server, {"bad": "1.0.0"})

        closure = context.restore()

        assert closure.missing == [PackageDependency("bad", "1.0.0")]

    def test_malformed_dependency_list_is_not_followed(self, tmp_path, fake_server):
        """A package whose manifest lists dependencies as an array is kept as a leaf."""
        manifest = FileEntry("package.json", b'{"name": "a", "version": "1.0.0", "dependencies": ["b"]}')
        fake_server.packages["a"] = {"1.0.0": create_package_from_entries([manifest])}
        fake_server.add("c", "1.0.0")
        context = _context(tmp_path, fake_server, {"a": "1.0.0", "c": "1.0.0"})

        closure = context.restore()

        assert [r.name for r in closure.references] == ["a", "c"]
        assert closure.missing == []

    def test_listing_failure_is_missing(self, tmp_path, fake_server):
        """Errors while looking up versions are recorded as missing."""
        fake_server.add("ok", "1.0.0")
        context = _context(tmp_path, fake_server, {"flaky": "1.0.0", "ok": "1.0.0"})
        real_get_versions = fake_server.get_versions

        def get_versions(name):
            if name == "flaky":
                raise requests.ConnectionError("down")
            return real_get_versions(name)

        with patch.object(fake_server, "get_versions", side_effect=get_versions):
            closure = context.restore()

        assert closure.references == [PackageReference("ok", "1.0.0")]
        assert closure.missing == [PackageDependency("flaky", "1.0.0")]

    def test_every_dependency_is_accounted_for_once(self, tmp_path, fake_server):
        """Each reachable name is either found or missing, found names are unique."""
        fake_server.add("a", "1.0.0", dependencies={"ghost": "1.0.0", "b": "1.0.0"})
        fake_server.add("b", "1.0.0", dependencies={"a": "1.0.0", "ghost": "1.0.0"})
        context = _context(tmp_path, fake_server, {"a": "1.0.0", "b": "1.0.0"})

        closure = context.restore()

        found = [r.name for r in closure.references]
        missing = [d.name for d in closure.missing]
        assert sorted(found + missing) == ["a", "b", "ghost"]
        assert len(set(found)) == len(found)

    def test_lock_file_is_written(self, tmp_path, fake_server):
        """The closure is persisted through the project."""
        fake_server.add("acme.core", "1.0.0")
        context = _context(tmp_path, fake_server, {"acme.core": "1.0.0", "ghost.pkg": "2.0.0"})

        context.restore()
        stored = context.project.read_closure()

        assert stored.references == [PackageReference("acme.core", "1.0.0")]
        assert stored.missing == [PackageDependency("ghost.pkg", "2.0.0")]

    def test_restore_starts_from_scratch(self, tmp_path, fake_server):
        """A second restore does not carry over earlier results."""
        fake_server.add("a", "1.0.0")
        context = _context(tmp_path, fake_server, {"a": "1.0.0"})
        context.restore()
        project_ops.remove_dependency(context.project, "a")

        assert context.restore().references == []

    def test_report_is_called_on_install(self, tmp_path, fake_server):
        """Progress is reported once per newly installed package."""
        fake_server.add("acme.core", "1.0.0")
        messages = []
        context = _context(tmp_path, fake_server, {"acme.core": "1.0.0"}, report=messages.append)

        context.restore()
        context.restore()

        assert messages == ["Installed acme.core@1.0.0."]


class TestCacheInstall:
    """Single dependency installs."""

    def test_already_installed_is_not_fetched(self, tmp_path, fake_server, make_package):
        """Installed packages are used as they are."""
        fake_server.add("a", "1.0.0")
        context = _context(tmp_path, fake_server, {})
        context.cache.install(PackageReference("a", "1.0.0"), make_package("a", "1.0.0"))

        assert context.install("a", "1.0.0") == PackageReference("a", "1.0.0")
        assert fake_server.requested == []

    def test_without_server_resolves_from_cache(self, tmp_path, make_package):
        """Offline contexts resolve against installed versions."""
        context = _context(tmp_path, None, {"a": "^1.0.0", "b": "1.0.0"})
        context.cache.install(PackageReference("a", "1.0.0"), make_package("a", "1.0.0"))
        context.cache.install(PackageReference("a", "1.5.0"), make_package("a", "1.5.0"))

        closure = context.restore()

        assert closure.references == [PackageReference("a", "1.5.0")]
        assert closure.missing == [PackageDependency("b", "1.0.0")]

    def test_unsatisfiable_range(self, tmp_path, fake_server):
        """No matching version gives the NONE sentinel."""
        fake_server.add("a", "1.0.0")
        context = _context(tmp_path, fake_server, {})

        assert context.install("a", "^2.0.0").not_found

    def test_missing_archive(self, tmp_path, fake_server):
        """A listed version without an archive gives the NONE sentinel."""
        fake_server.add("a", "1.0.0")
        fake_server.packages["a"]["2.0.0"] = None
        context = _context(tmp_path, fake_server, {})

        assert context.install("a", "2.0.0") is PackageReference.NONE
