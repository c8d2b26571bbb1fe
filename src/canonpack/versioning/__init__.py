"""Version parsing, sorting and range resolution."""

from .ranges import parse_range
from .versions import (
    Versions,
    parse_version,
    resolve_dependency,
    versions_from_listing,
    versions_from_references,
)

__all__ = [
    "Versions",
    "parse_range",
    "parse_version",
    "resolve_dependency",
    "versions_from_listing",
    "versions_from_references",
]
