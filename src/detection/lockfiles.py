"""Lockfile parsers for the npm ecosystem (package-lock.json, yarn.lock, pnpm-lock.yaml).

Each parser reads only as much of the lockfile as it needs to find the
lockfile *schema* version and translates it into the major version(s) of the
tool that writes that schema. One schema version is often written by several
tool majors; those translate to an ambiguous label such as ``"7 or 8"``.

The translation tables are data: supporting a new schema version is a table
edit, not a code change.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

import yaml

from constants import Constants
from common.errors import ClassificationError

logger = logging.getLogger(__name__)

UNKNOWN = Constants.UNKNOWN_VERSION

# https://docs.npmjs.com/cli/v11/configuring-npm/package-lock-json#lockfileversion
NPM_LOCKFILE_VERSIONS: Mapping[str, str] = {
    "1": "5 or 6",  # ^5.0.0 || ^6.0.0
    "2": "7 or 8",  # ^7.0.0 || ^8.0.0
    "3": "9 or 10 or 11",  # ^9.0.0 || ^10.0.0 || ^11.0.0
}

# https://github.com/yarnpkg/berry/blob/master/packages/yarnpkg-core/sources/Project.ts
YARN_LOCKFILE_VERSIONS: Mapping[str, str] = {
    "4": "3",  # ^3.0.0
    "5": "3",  # ^3.1.0
    "6": "3",  # ^3.2.0
    "8": "4",
}

# https://github.com/pnpm/pnpm/blob/main/packages/constants/src/index.ts
PNPM_LOCKFILE_VERSIONS: Mapping[str, str] = {
    "5": "3",  # ^3.0.0
    "5.1": "3 or 4 or 5",  # ^3.5.0 || ^4.0.0 || ^5.0.0
    "5.2": "5",  # ^5.10.0
    "5.3": "6",
    "5.4": "7",
    "6.0": "8",  # opt-in in ^7.24.0, default in ^8.0.0
    "6.1": "9",  # v9.0.0-alpha.5
    "7.0": "9",  # v9.0.0-alpha.5
    "9.0": "9 or 10",
}

YARN_CLASSIC_VERSION = "1"
# There is no Bun 2 yet; a Bun lockfile MUST come from Bun 1.
BUN_VERSION = "1"

_YARN_CLASSIC_HEADER = re.compile(r"# yarn lockfile v1", re.IGNORECASE)


def lookup_version(schema_version: Any, table: Mapping[str, str]) -> str:
    """Translate a lockfile schema version through ``table``.

    Missing, empty or unmapped schema versions yield ``"unknown"``.
    """
    if schema_version is None or schema_version == "" or isinstance(schema_version, bool):
        return UNKNOWN
    return table.get(str(schema_version).strip(), UNKNOWN)


def _recover_package_lock(content: str) -> Any:
    """Best-effort parse of a truncated package-lock.json.

    Keeps the first few lines, cuts at the last comma and closes the object;
    enough to reach ``lockfileVersion`` in lockfiles npm writes.
    """
    head_lines = content.split("\n")[:Constants.PACKAGE_LOCK_RECOVERY_LINES]
    head = "\n".join(head_lines)
    last_comma = head.rfind(",")
    if last_comma >= 0:
        head = head[:last_comma]
    partial = f"{head}\n}}"
    try:
        return json.loads(partial)
    except json.JSONDecodeError as exc:
        raise ClassificationError(f"Invalid package-lock.json: {partial}") from exc


def parse_package_lock_version(content: str) -> str:
    """Return the npm version label for a package-lock.json body.

    Raises:
        ClassificationError: the content is not JSON and the partial-parse
            recovery fails too.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.warning("Invalid package-lock.json, attempting to partially parse")
        data = _recover_package_lock(content)

    if not isinstance(data, dict):
        return UNKNOWN
    schema_version = data.get("lockfileVersion")
    if not schema_version:
        return UNKNOWN
    return lookup_version(schema_version, NPM_LOCKFILE_VERSIONS)


def is_yarn_classic_lock(content: str) -> bool:
    """True when a yarn.lock carries the Yarn 1 header comment."""
    return bool(_YARN_CLASSIC_HEADER.search(content))


def parse_yarn_berry_version(content: str) -> str:
    """Return the Yarn Modern version label from a yarn.lock body.

    Only the leading lines are parsed; Yarn 2+ writes the ``__metadata`` block
    right after the header comment.
    """
    head = "\n".join(content.split("\n")[:Constants.YARN_LOCK_HEADER_LINES])
    try:
        data = yaml.safe_load(head)
    except yaml.YAMLError as exc:
        logger.warning("Unreadable yarn.lock metadata: %s", exc)
        return UNKNOWN

    metadata = data.get("__metadata") if isinstance(data, dict) else None
    if not isinstance(metadata, dict):
        return UNKNOWN
    return lookup_version(metadata.get("version"), YARN_LOCKFILE_VERSIONS)


def parse_pnpm_lock_version(content: str) -> str:
    """Return the pnpm version label from the first line of pnpm-lock.yaml."""
    first_line = content.split("\n", 1)[0]
    try:
        data = yaml.safe_load(first_line)
    except yaml.YAMLError as exc:
        logger.warning("Unreadable pnpm-lock.yaml header: %s", exc)
        return UNKNOWN

    if not isinstance(data, dict):
        return UNKNOWN
    return lookup_version(data.get("lockfileVersion"), PNPM_LOCKFILE_VERSIONS)
