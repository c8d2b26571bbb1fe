"""Constants used in the project."""

from enum import Enum


class PublishMode(Enum):
    """Publish modes understood by the registry.

    Args:
        Enum (string): Value sent on the publish URL.
    """

    NEW = "New"
    EXISTING = "Existing"
    ANY = "Any"


class RegistryStyle(Enum):
    """URL shaping flavors for registries.

    Args:
        Enum (string): Provider flavor.
    """

    PATH = "path"
    SCOPED = "scoped"


class VersionTokens:  # pylint: disable=too-few-public-methods
    """Literal version tokens with a special meaning in manifests."""

    LATEST = "latest"  # api only
    CURRENT = "current"  # marks the project contents themselves


class PackageConsts:  # pylint: disable=too-few-public-methods
    """File and folder names of the on-disk and in-archive package layout."""

    MANIFEST = "package.json"
    LOCK_FILE = "canonpack.lock.json"
    CANONICAL_INDEX_FILE = ".index.json"
    PACKAGE_FOLDER = "package"
    OTHER_FOLDER = "other"
    INDEX_VERSION = 6


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    USER_AGENT = "canonpack/0.4"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    LISTING_CACHE_TTL_SEC = 300

    DEFAULT_REGISTRY = "simplifier"
    CACHE_ROOT = None  # None means the platform data location

    ENV_CONFIG = "CANONPACK_CONFIG"
    ENV_LOG_LEVEL = "CANONPACK_LOG_LEVEL"
    ENV_REGISTRY = "CANONPACK_REGISTRY"
    ENV_CACHE_ROOT = "CANONPACK_CACHE_ROOT"
    ENV_TIMEOUT = "CANONPACK_TIMEOUT"


# Well-known registries as plain configuration values: name -> (style, root)
KNOWN_REGISTRIES = {
    "npm": (RegistryStyle.SCOPED, "https://registry.npmjs.org"),
    "simplifier": (RegistryStyle.PATH, "https://packages.simplifier.net"),
    "simplifier-npm": (RegistryStyle.SCOPED, "https://packages.simplifier.net"),
    "staging": (RegistryStyle.PATH, "https://packages-staging.simplifier.net"),
    "staging-npm": (RegistryStyle.SCOPED, "https://packages-staging.simplifier.net"),
}
