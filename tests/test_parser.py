"""Tests for JSON persistence of manifests, lock files and index files."""

import json
from datetime import datetime, timezone

import pytest

from canonpack.exceptions import ManifestError
from canonpack.models import (
    CanonicalIndex,
    PackageClosure,
    PackageDependency,
    PackageManifest,
    PackageReference,
    ResourceMetadata,
)
from canonpack.storage import parser


class TestManifest:
    """Manifest read and write."""

    def test_invalid_json_raises(self):
        """Broken JSON is a manifest error."""
        with pytest.raises(ManifestError):
            parser.read_manifest("{not json")

    def test_non_object_raises(self):
        """A JSON array is not a manifest."""
        with pytest.raises(ManifestError):
            parser.read_manifest("[]")

    def test_undecodable_bytes_raise(self):
        """Bytes that are not UTF-8 are a manifest error."""
        with pytest.raises(ManifestError):
            parser.read_manifest(b'{"name": "\xff"}')

    def test_dependencies_must_be_a_mapping(self):
        """A dependency list instead of a name -> range object is refused."""
        with pytest.raises(ManifestError):
            parser.read_manifest('{"name": "a", "dependencies": ["b"]}')
        with pytest.raises(ManifestError):
            parser.read_manifest('{"name": "a", "devDependencies": {"b": 1}}')

    def test_write_omits_nulls_and_ends_with_newline(self):
        """Output is indented, newline terminated and free of nulls."""
        text = parser.write_manifest(PackageManifest(name="p", version="1.0.0"))

        assert text == '{\n  "name": "p",\n  "version": "1.0.0"\n}\n'

    def test_round_trip_is_stable(self):
        """Writing what was read reproduces normalized content."""
        original = json.dumps({
            "version": "0.1.0",
            "name": "acme.core",
            "dependencies": {"hl7.fhir.r4.core": "4.0.1"},
            "fhirVersions": ["4.0.1"],
            "x-extra": True,
        })

        first = parser.write_manifest(parser.read_manifest(original))

        assert parser.write_manifest(parser.read_manifest(first)) == first

    def test_reads_bytes_with_bom(self):
        """A UTF-8 BOM is tolerated."""
        manifest = parser.read_manifest(b"\xef\xbb\xbf" + b'{"name": "p"}')

        assert manifest.name == "p"

    def test_merge_replaces_dependencies_and_keeps_unknown_keys(self):
        """Merging keeps foreign keys but takes dependencies from the model."""
        original = json.dumps({"name": "p", "custom": 1, "dependencies": {"old": "1.0.0"}})
        manifest = PackageManifest(name="p", version="2.0.0", dependencies={"new": "^1.0.0"})

        merged = json.loads(parser.json_merge_manifest(manifest, original))

        assert merged == {"name": "p", "custom": 1, "version": "2.0.0", "dependencies": {"new": "^1.0.0"}}


class TestLockFile:
    """Lock file read and write."""

    def test_round_trip(self):
        """References (scoped or not) and missing dependencies survive."""
        closure = PackageClosure(
            references=[PackageReference("acme.core", "1.1.0"), PackageReference("core", "2.0.0", "acme")],
            missing=[PackageDependency("ghost.pkg", "1.0.0")],
        )
        text = parser.write_lock_file(closure, updated=datetime(2024, 1, 2, tzinfo=timezone.utc))

        data = json.loads(text)
        restored = parser.read_lock_file(text)

        assert data["updated"] == "2024-01-02T00:00:00+00:00"
        assert data["dependencies"] == {"acme.core": "1.1.0", "@acme/core": "2.0.0"}
        assert restored.references == closure.references
        assert restored.references[1].scope == "acme"
        assert restored.missing == closure.missing

    def test_missing_keeps_every_range(self):
        """Two missing ranges of one name are written as separate entries, in order."""
        closure = PackageClosure(missing=[PackageDependency("ghost", "1.0.0"), PackageDependency("ghost", "^2.0.0")])

        text = parser.write_lock_file(closure)

        assert json.loads(text)["missing"] == [
            {"name": "ghost", "range": "1.0.0"},
            {"name": "ghost", "range": "^2.0.0"},
        ]
        assert parser.read_lock_file(text).missing == closure.missing

    def test_reads_missing_as_object(self):
        """Lock files with missing as a name -> range object still load."""
        closure = parser.read_lock_file('{"dependencies": {}, "missing": {"ghost": "1.0.0"}}')

        assert closure.missing == [PackageDependency("ghost", "1.0.0")]

    def test_malformed_is_absent(self):
        """Malformed lock files read as None."""
        assert parser.read_lock_file("nope") is None
        assert parser.read_lock_file("[1, 2]") is None


class TestCanonicalIndex:
    """Index file read and write."""

    def test_round_trip(self):
        """Rows keep their canonical and flags."""
        index = CanonicalIndex(
            version=6,
            date="2024-01-01T00:00:00+00:00",
            files=[ResourceMetadata(file_name="a.json", file_path="package/a.json",
                                    canonical="http://x/a", has_snapshot=True)],
        )

        restored = parser.read_canonical_index(parser.write_canonical_index(index))

        assert restored == index

    def test_wire_keys(self):
        """Rows are written with their wire names."""
        text = parser.write_canonical_index(CanonicalIndex(6, None, [ResourceMetadata(canonical="u")]))

        row = json.loads(text)["files"][0]

        assert json.loads(text)["index-version"] == 6
        assert row["url"] == "u"
        assert row["hasSnapshot"] is False
