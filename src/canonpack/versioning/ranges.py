"""Range expression parsing using npm semantic versioning rules."""

import logging
import re
from typing import Optional, Union

import semantic_version

logger = logging.getLogger(__name__)

RangeSpec = Union[semantic_version.NpmSpec, semantic_version.SimpleSpec]


def _normalize_spec(spec_str: str) -> str:
    """Normalize range syntax the npm grammar rejects into SimpleSpec-compatible form."""
    s = spec_str.strip()

    # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3,<=1.4.5"
    m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s+-\s+([0-9A-Za-z\.\-\+]+)\s*$', s)
    if m:
        left, right = m.group(1), m.group(2)
        return f">={left},<={right}"

    # x-ranges: 1.2.x or 1.x or 1.* -> comparator pairs
    s2 = s.replace('*', 'x').lower()
    m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
    if m:
        major, minor = int(m.group(1)), int(m.group(2))
        return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

    m = re.match(r'^\s*(\d+)(?:\.x)?\s*$', s2)
    if m:
        major = int(m.group(1))
        return f">={major}.0.0,<{major + 1}.0.0"

    # Comparator lists written with commas and spaces: ">= 1.0.0, < 2.0.0"
    return re.sub(r'\s*,\s*', ',', re.sub(r'([<>=!~^]+)\s+', r'\1', s))


def parse_range(expression: str) -> Optional[RangeSpec]:
    """Parse a range expression, or return None when it is malformed.

    npm syntax (^, ~, x-ranges, hyphen ranges, ||) is tried first; comma
    separated comparator lists are accepted through a normalized fallback.
    """
    try:
        return semantic_version.NpmSpec(expression.strip())
    except ValueError:
        pass
    try:
        return semantic_version.SimpleSpec(_normalize_spec(expression))
    except ValueError as e:
        logger.debug("Invalid range expression %r: %s", expression, e)
        return None
