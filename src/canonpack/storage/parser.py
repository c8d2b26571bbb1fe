"""JSON reading and writing for manifests, lock files and index files.

Output uses two-space indentation and a trailing newline so files diff
cleanly; null-valued manifest fields are never written.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from ..exceptions import ManifestError
from ..models import CanonicalIndex, PackageClosure, PackageDependency, PackageManifest, PackageReference

logger = logging.getLogger(__name__)


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _text(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")
    return content


def deserialize(content: Union[str, bytes]) -> Optional[Any]:
    """Lenient JSON parse: malformed input yields None."""
    try:
        return json.loads(_text(content))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Could not parse JSON: %s", e)
        return None


def _check_dependency_map(value: Any, key: str) -> None:
    if value is None:
        return
    if not isinstance(value, dict) or not all(
        isinstance(name, str) and (rng is None or isinstance(rng, str)) for name, rng in value.items()
    ):
        raise ManifestError(f"Manifest field '{key}' must map package names to version ranges")


def read_manifest(content: Union[str, bytes]) -> PackageManifest:
    try:
        data = json.loads(_text(content))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestError(f"Manifest is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a JSON object")
    for key in ("dependencies", "devDependencies"):
        _check_dependency_map(data.get(key), key)
    return PackageManifest.from_dict(data)


def write_manifest(manifest: PackageManifest) -> str:
    return _dumps(manifest.to_dict())


def json_merge_manifest(manifest: PackageManifest, original: str) -> str:
    """Overlay ``manifest`` onto existing file content.

    Keys the model leaves empty keep their original value, except
    ``dependencies`` which is always replaced wholesale.
    """
    try:
        content = json.loads(original)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Existing manifest is not valid JSON: {e}") from e
    if not isinstance(content, dict):
        raise ManifestError("Existing manifest must be a JSON object")
    content.pop("dependencies", None)
    for key, value in manifest.to_dict().items():
        content[key] = value
    return _dumps({k: v for k, v in content.items() if v is not None})


def _missing_from_json(missing: Any) -> List[PackageDependency]:
    # Older lock files keep missing entries as a name -> range object
    if isinstance(missing, dict):
        return [PackageDependency(str(k), v) for k, v in missing.items()]
    if not isinstance(missing, list):
        return []
    return [
        PackageDependency(str(item["name"]), item.get("range"))
        for item in missing
        if isinstance(item, dict) and item.get("name")
    ]


def read_lock_file(content: Union[str, bytes]) -> Optional[PackageClosure]:
    """Parse a lock file; malformed content is treated as absent."""
    data = deserialize(content)
    if not isinstance(data, dict):
        logger.warning("Ignoring malformed lock file")
        return None
    references = data.get("dependencies")
    if not isinstance(references, dict):
        references = {}
    return PackageClosure(
        references=[PackageReference.create(str(k), v) for k, v in references.items()],
        missing=_missing_from_json(data.get("missing")),
    )


def write_lock_file(closure: PackageClosure, updated: Optional[datetime] = None) -> str:
    updated = updated or datetime.now(timezone.utc)
    data: Dict[str, Any] = {
        "updated": updated.isoformat(),
        "dependencies": {r.full_name: r.version for r in closure.references},
        "missing": [{"name": d.name, "range": d.range} for d in closure.missing],
    }
    return _dumps(data)


def read_canonical_index(content: Union[str, bytes]) -> Optional[CanonicalIndex]:
    data = deserialize(content)
    if not isinstance(data, dict):
        return None
    return CanonicalIndex.from_dict(data)


def write_canonical_index(index: CanonicalIndex) -> str:
    return _dumps(index.to_dict())
