"""Data models for package manager classification."""

from dataclasses import dataclass
from typing import Optional, Tuple

from constants import PackageManagers

# Managers that carry a version histogram; "unknown" never does.
VERSIONED_MANAGERS: Tuple[PackageManagers, ...] = (
    PackageManagers.NPM,
    PackageManagers.YARN_CLASSIC,
    PackageManagers.YARN_MODERN,
    PackageManagers.PNPM,
    PackageManagers.BUN,
)


@dataclass(frozen=True)
class RepositoryIdentity:
    """A repository to classify, as supplied by the repository lister."""
    name: str  # owner/repo
    default_branch: str


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one repository.

    ``package_manager`` is None only for non-Node.js projects (no
    package.json). ``version`` is None whenever the detection path carries no
    version information.
    """
    package_manager: Optional[PackageManagers]
    version: Optional[str] = None

    @property
    def is_nodejs(self) -> bool:
        return self.package_manager is not None

    @classmethod
    def non_nodejs(cls) -> "ClassificationResult":
        return cls(package_manager=None, version=None)

    @classmethod
    def unknown(cls) -> "ClassificationResult":
        return cls(package_manager=PackageManagers.UNKNOWN, version=None)


@dataclass(frozen=True)
class Observation:
    """Bookkeeping facts gathered while classifying one repository.

    ``None`` means the cascade never reached the point where the fact is
    decided (e.g. Corepack repositories never reach the lockfile checks).
    """
    nodejs: bool
    uses_corepack: Optional[bool] = None
    has_lockfile: Optional[bool] = None


# A classification together with its bookkeeping side effects.
Classification = Tuple[ClassificationResult, Observation]
