"""Registry access: URL providers and the HTTP client."""

from .client import RegistryClient
from .urls import PackageUrlProvider, PathUrlProvider, ScopedUrlProvider, create_url_provider

__all__ = [
    "PackageUrlProvider",
    "PathUrlProvider",
    "RegistryClient",
    "ScopedUrlProvider",
    "create_url_provider",
]
