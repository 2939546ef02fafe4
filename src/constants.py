"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    CLASSIFICATION_ERROR = 3
    CONFIG_ERROR = 4


class PackageManagers(Enum):
    """Package managers a repository can be classified as.

    Args:
        Enum (string): Package manager identities, as used in result documents.
    """

    NPM = "npm"
    YARN_CLASSIC = "yarn_classic"
    YARN_MODERN = "yarn_modern"
    PNPM = "pnpm"
    BUN = "bun"
    UNKNOWN = "unknown"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_RAW_BASE = "https://raw.githubusercontent.com"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
    ENV_LOG_LEVEL = "PMSTATS_LOG_LEVEL"
    ENV_CACHE_DIR = "PMSTATS_CACHE_DIR"
    ENV_RESULTS_DIR = "PMSTATS_RESULTS_DIR"
    ENV_DEBUG = "DEBUG"

    # Most starred repositories, period
    QUERY = "stars:>1"
    SEARCH_LANGUAGES = ["JavaScript", "TypeScript"]
    SEARCH_PER_PAGE = 30
    # 30 items per page, 1000 results are reachable with 34 requests
    MAX_PAGES = 34

    CACHE_DIR = ".cache"
    CACHE_FETCH_SUBDIR = "fetch"
    CACHE_EXISTS_INDEX = "file-exists-stats.json"
    RESULTS_DIR = "results"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    MAX_WORKERS = 1

    PACKAGE_JSON_FILE = "package.json"
    PACKAGE_LOCK_FILE = "package-lock.json"
    NPM_SHRINKWRAP_FILE = "npm-shrinkwrap.json"
    YARN_LOCK_FILE = "yarn.lock"
    PNPM_LOCK_FILE = "pnpm-lock.yaml"
    BUN_LOCKB_FILE = "bun.lockb"
    BUN_LOCK_FILE = "bun.lock"
    CONTRIBUTING_FILE = "CONTRIBUTING.md"
    CI_WORKFLOW_FILE = ".github/workflows/ci.yml"

    PACKAGE_LOCK_RECOVERY_LINES = 5
    YARN_LOCK_HEADER_LINES = 10

    UNKNOWN_VERSION = "unknown"
    VERSION_SEPARATOR = " or "
