"""Transitive dependency restore.

A restore always starts from an empty closure and walks the dependency graph
depth first from the project manifest. The first resolution of a name wins;
later occurrences reuse it without touching the registry again.
"""

from __future__ import annotations

import logging
import tarfile
from typing import TYPE_CHECKING

import requests

from .common.logging_utils import extra_context
from .exceptions import CanonpackError
from .models import PackageClosure, PackageDependency, PackageManifest, PackageReference
from .storage.base import resolve
from .versioning.ranges import parse_range
from .versioning.versions import parse_version

if TYPE_CHECKING:
    from .context import PackageContext

logger = logging.getLogger(__name__)

_INSTALL_ERRORS = (CanonpackError, OSError, tarfile.TarError, requests.RequestException)


def _report(context: "PackageContext", message: str) -> None:
    if context.report is not None:
        context.report(message)


def cache_install(context: "PackageContext", dependency: PackageDependency) -> PackageReference:
    """Resolve a dependency and make sure it is installed in the cache.

    Returns PackageReference.NONE when nothing satisfies the range or the
    package could not be fetched or installed.
    """
    source = context.server if context.server is not None else context.cache
    try:
        reference = resolve(source, dependency)
    except _INSTALL_ERRORS as e:
        logger.warning(
            "Could not resolve %s: %s",
            dependency,
            e,
            extra=extra_context(event="resolve", component="restore", outcome="failed"),
        )
        return PackageReference.NONE
    if reference.not_found:
        logger.info(
            "No version of %s satisfies %s",
            dependency.name,
            dependency.range or "latest",
            extra=extra_context(event="resolve", component="restore", outcome="not_found"),
        )
        return reference

    try:
        if context.cache.is_installed(reference):
            return reference
        if context.server is None:
            return PackageReference.NONE
        buffer = context.server.get_package(reference)
        if buffer is None:
            return PackageReference.NONE
        context.cache.install(reference, buffer)
    except _INSTALL_ERRORS as e:
        logger.warning(
            "Could not install %s: %s",
            reference,
            e,
            extra=extra_context(event="install", component="restore", outcome="failed"),
        )
        return PackageReference.NONE

    _report(context, f"Installed {reference}.")
    return reference


def _satisfies(reference: PackageReference, dependency: PackageDependency) -> bool:
    if dependency.is_latest:
        return True
    spec = parse_range(dependency.range)
    version = parse_version(reference.version)
    return spec is not None and version is not None and spec.match(version)


def _restore_dependency(
    context: "PackageContext",
    closure: PackageClosure,
    dependency: PackageDependency,
) -> None:
    existing = closure.find(dependency.name)
    if existing is not None:
        if not _satisfies(existing, dependency):
            logger.debug("Reusing %s for %s although it is outside the range", existing, dependency)
        return

    reference = cache_install(context, dependency)
    if reference.not_found:
        closure.add_missing(dependency)
        return

    closure.add(reference)
    manifest = context.cache.read_manifest(reference)
    if manifest is not None:
        _restore_manifest(context, closure, manifest)


def _restore_manifest(context: "PackageContext", closure: PackageClosure, manifest: PackageManifest) -> None:
    owner = manifest.package_reference
    for dependency in manifest.get_dependencies():
        if owner.found and dependency.name.lower() == owner.full_name.lower():
            logger.warning("%s depends on its own name (%s); ignoring", owner, dependency)
            closure.conflicts.append((dependency, owner))
            continue
        _restore_dependency(context, closure, dependency)


def restore(context: "PackageContext") -> PackageClosure:
    """Rebuild the project's closure from scratch and persist it as the lock file."""
    closure = PackageClosure()
    context.closure = closure
    manifest = context.project.read_manifest()
    if manifest is not None:
        _restore_manifest(context, closure, manifest)
    else:
        logger.warning("Project has no manifest; writing an empty closure")
    context.project.write_closure(closure)
    logger.info(
        "Restored %d packages, %d missing",
        len(closure.references),
        len(closure.missing),
        extra=extra_context(event="restore", component="restore",
                            outcome="complete" if closure.complete else "incomplete"),
    )
    return closure
