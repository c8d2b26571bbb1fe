"""Manifest editing operations on a Project."""

from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import ManifestError
from ..models import PackageDependency, PackageManifest
from . import manifest_file
from .base import Project

logger = logging.getLogger(__name__)


def has_manifest(project: Project) -> bool:
    return project.read_manifest() is not None


def has_closure(project: Project) -> bool:
    return project.read_closure() is not None


def init_project(
    project: Project,
    name: str,
    version: Optional[str] = None,
    domain_version: Optional[str] = None,
) -> PackageManifest:
    """Create and write a fresh manifest; an existing one is never overwritten."""
    if project.read_manifest() is not None:
        raise ManifestError("A manifest already exists for this project")
    manifest = manifest_file.create(name, domain_version)
    if version:
        manifest.version = version
    project.write_manifest(manifest)
    logger.info("Initialized project %s", manifest.package_reference)
    return manifest


def add_dependency(project: Project, dependency: PackageDependency) -> PackageManifest:
    """Declare a dependency in the project manifest.

    Args:
        project: Project to modify.
        dependency: Name and range to declare; an existing entry with the same
            name (in any casing) is replaced.

    Returns:
        The manifest as written.

    Raises:
        ManifestError: If the project has no manifest.
    """
    manifest = project.read_manifest()
    if manifest is None:
        raise ManifestError("Project has no manifest")
    manifest.add_dependency(dependency.name, dependency.range)
    project.write_manifest(manifest)
    return manifest


def remove_dependency(project: Project, name: str) -> bool:
    """Drop ``name`` from the manifest; False when it was not declared."""
    manifest = project.read_manifest()
    if manifest is None or not manifest.remove_dependency(name):
        return False
    project.write_manifest(manifest)
    return True
