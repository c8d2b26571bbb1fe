"""The project lock file: the persisted closure of the last restore."""

from __future__ import annotations

import logging
import os
from typing import Optional

from ..constants import PackageConsts
from ..models import PackageClosure
from . import parser

logger = logging.getLogger(__name__)


def read(path: str) -> Optional[PackageClosure]:
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8-sig") as f:
        return parser.read_lock_file(f.read())


def read_from_folder(folder: str) -> Optional[PackageClosure]:
    return read(os.path.join(folder, PackageConsts.LOCK_FILE))


def write_to_folder(closure: PackageClosure, folder: str) -> None:
    path = os.path.join(folder, PackageConsts.LOCK_FILE)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(parser.write_lock_file(closure))
    logger.debug("Wrote lock file %s", path)


def is_outdated(folder: str) -> bool:
    """True when the manifest changed after the lock file was written."""
    manifest_path = os.path.join(folder, PackageConsts.MANIFEST)
    lock_path = os.path.join(folder, PackageConsts.LOCK_FILE)
    if not os.path.isfile(lock_path):
        return True
    if not os.path.isfile(manifest_path):
        return False
    return os.path.getmtime(lock_path) < os.path.getmtime(manifest_path)
