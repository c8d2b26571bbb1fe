"""Builds index rows for the files of a folder.

Understanding document content is the job of a pluggable extractor. The
default one reads top-level fields of JSON documents; anything else is
indexed by file name and path only.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional

from ..archive.entries import all_files_to_pack, make_relative_path
from ..constants import PackageConsts
from ..models import ResourceMetadata

logger = logging.getLogger(__name__)

# (file name, raw bytes) -> metadata fields, or None when the file is not a document
MetadataExtractor = Callable[[str, bytes], Optional[Dict[str, Any]]]

_SKIPPED = {PackageConsts.CANONICAL_INDEX_FILE}


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def json_resource_metadata(file_name: str, content: bytes) -> Optional[Dict[str, Any]]:
    """Default extractor for JSON documents carrying a ``resourceType``."""
    if not file_name.lower().endswith(".json"):
        return None
    try:
        node = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(node, dict) or not isinstance(node.get("resourceType"), str):
        return None

    resource_type = node["resourceType"]
    expansion = node.get("expansion")
    return {
        "resource_type": resource_type,
        "id": _str_or_none(node.get("id")),
        "canonical": _str_or_none(node.get("url")),
        "version": _str_or_none(node.get("version")),
        "kind": _str_or_none(node.get("kind")),
        "type": _str_or_none(node.get("type")),
        "domain_version": _str_or_none(node.get("fhirVersion")),
        "has_snapshot": resource_type == "StructureDefinition" and "snapshot" in node,
        "has_expansion": (
            resource_type == "ValueSet"
            and isinstance(expansion, dict)
            and expansion.get("contains") is not None
        ),
    }


def get_file_metadata(
    folder: str,
    filepath: str,
    extractor: MetadataExtractor = json_resource_metadata,
) -> ResourceMetadata:
    file_name = os.path.basename(filepath)
    metadata = ResourceMetadata(file_name=file_name, file_path=make_relative_path(filepath, folder))
    try:
        with open(filepath, "rb") as f:
            fields = extractor(file_name, f.read())
    except OSError as e:
        logger.warning("Could not read %s for indexing: %s", filepath, e)
        return metadata
    if fields:
        for key, value in fields.items():
            setattr(metadata, key, value)
    return metadata


def index_folder(
    folder: str,
    recurse: bool = True,
    extractor: MetadataExtractor = json_resource_metadata,
) -> List[ResourceMetadata]:
    if recurse:
        paths = all_files_to_pack(folder)
    else:
        paths = sorted(
            os.path.join(folder, name) for name in os.listdir(folder)
            if os.path.isfile(os.path.join(folder, name))
        )
    return [
        get_file_metadata(folder, path, extractor)
        for path in paths
        if os.path.basename(path) not in _SKIPPED
    ]
