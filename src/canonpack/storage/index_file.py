"""Per-package canonical index file (``.index.json``)."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from ..constants import PackageConsts
from ..models import CanonicalIndex
from . import parser
from .indexer import MetadataExtractor, index_folder, json_resource_metadata

logger = logging.getLogger(__name__)


def _path(folder: str) -> str:
    return os.path.join(folder, PackageConsts.CANONICAL_INDEX_FILE)


def read(path: str) -> Optional[CanonicalIndex]:
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8-sig") as f:
        return parser.read_canonical_index(f.read())


def read_from_folder(folder: str) -> Optional[CanonicalIndex]:
    return read(_path(folder))


def write_to_folder(index: CanonicalIndex, folder: str) -> None:
    with open(_path(folder), "w", encoding="utf-8", newline="\n") as f:
        f.write(parser.write_canonical_index(index))


def create(
    folder: str,
    recurse: bool = True,
    extractor: MetadataExtractor = json_resource_metadata,
) -> CanonicalIndex:
    """Index ``folder`` and persist the result next to its files."""
    index = CanonicalIndex(
        version=PackageConsts.INDEX_VERSION,
        date=datetime.now(timezone.utc).isoformat(),
        files=index_folder(folder, recurse, extractor),
    )
    write_to_folder(index, folder)
    logger.debug("Indexed %d files in %s", len(index.files), folder)
    return index


def get_from_folder(
    folder: str,
    recurse: bool = True,
    extractor: MetadataExtractor = json_resource_metadata,
) -> CanonicalIndex:
    """Existing index when current, otherwise a freshly built one."""
    index = read_from_folder(folder)
    if index is not None and index.version == PackageConsts.INDEX_VERSION:
        return index
    if index is not None:
        logger.info("Rebuilding stale index (version %s) in %s", index.version, folder)
    return create(folder, recurse, extractor)
