"""Interpretation of the Corepack ``packageManager`` field of package.json.

Values look like ``pnpm@8.6.0`` or
``yarn@4.2.1+sha256.15ce7668...``. The declaration is authoritative, so
anything unexpected is an error rather than a guess: a new package manager
showing up in the wild should stop the run until it is supported.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from constants import PackageManagers
from common.errors import ClassificationError
from detection.models import ClassificationResult

# Evaluated in order; the first matching pattern decides the manager.
COREPACK_PATTERNS: List[Tuple[PackageManagers, "re.Pattern[str]"]] = [
    (PackageManagers.NPM, re.compile(r"^npm@", re.IGNORECASE)),
    (PackageManagers.YARN_CLASSIC, re.compile(r"^yarn@v?1(?!\d)", re.IGNORECASE)),
    (PackageManagers.YARN_MODERN, re.compile(r"^yarn@v?(?:[2-9]|[1-9]\d+)", re.IGNORECASE)),
    (PackageManagers.PNPM, re.compile(r"^pnpm@", re.IGNORECASE)),
    (PackageManagers.BUN, re.compile(r"^bun@", re.IGNORECASE)),
]

_MAJOR_VERSION = re.compile(r"@v?(\d+)")


def extract_major_version(declaration: str) -> str:
    """Return the major version of a Corepack declaration as a string.

    Raises:
        ClassificationError: no ``@<digits>`` token is present.
    """
    match = _MAJOR_VERSION.search(declaration)
    if not match:
        raise ClassificationError(f"packageManager version not recognized: {declaration}")
    return str(int(match.group(1)))


def parse_package_manager_field(value: object) -> ClassificationResult:
    """Classify a repository from its ``packageManager`` declaration.

    Raises:
        ClassificationError: the value names no known package manager, or
            carries no version.
    """
    if not isinstance(value, str):
        raise ClassificationError(f"packageManager not recognized: {value!r}")
    declaration = value.strip()

    for manager, pattern in COREPACK_PATTERNS:
        if pattern.search(declaration):
            return ClassificationResult(manager, extract_major_version(declaration))

    raise ClassificationError(f"packageManager not recognized: {declaration}")
