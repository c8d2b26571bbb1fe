"""Exception types raised to callers.

Resolution-level failures (not found, transport) are never raised; they are
folded into closure state. Only conflicts and malformed input surface here.
"""


class CanonpackError(Exception):
    """Base class for all errors raised by canonpack."""


class ConflictingArtifactsError(CanonpackError):
    """Several authoritative artifacts share one canonical identity."""

    def __init__(self, canonical: str, candidates=None):
        self.canonical = canonical
        self.candidates = list(candidates or [])
        super().__init__(
            f"Found multiple conflicting artifacts with the same canonical url identifier: {canonical}"
        )


class ManifestError(CanonpackError):
    """A manifest is malformed, has an invalid name, or already exists."""


class PackageNotFoundError(CanonpackError):
    """A directly requested package could not be resolved or fetched."""


class FileContentNotFoundError(CanonpackError):
    """A file is missing from an installed package."""
