"""Package manager classification engine.

Classification is an ordered cascade of steps. Each step either settles the
repository's package manager or passes; the first step that settles wins:

1. no package.json             -> non-Node.js project
2. packageManager declaration  -> whatever Corepack is told to use
3. marker files (lockfiles)    -> MARKER_RULES, in order
4. package.json text           -> SCRIPT_SIGNALS
5. CONTRIBUTING.md, CI config  -> DOCUMENT_SIGNALS over DOCUMENT_SOURCES
6. otherwise                   -> unknown

Every file access goes through the injected ``FileProbe``; the engine keeps
no cache of its own.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from constants import Constants, PackageManagers
from common.errors import RemoteNotFound
from common.logging_utils import extra_context, is_debug_enabled
from detection import lockfiles
from detection.corepack import parse_package_manager_field
from detection.models import (
    Classification,
    ClassificationResult,
    Observation,
    RepositoryIdentity,
)
from detection.signals import DOCUMENT_SIGNALS, SCRIPT_SIGNALS, match_signals
from probe.remote import FileProbe, raw_file_url

logger = logging.getLogger(__name__)


@dataclass
class _Scan:
    """Mutable state of one repository walk through the cascade."""
    repo: RepositoryIdentity
    probe: FileProbe
    raw_manifest: str = ""
    manifest: Optional[Dict[str, Any]] = None
    uses_corepack: Optional[bool] = None
    has_lockfile: Optional[bool] = None
    nodejs: bool = True
    trace: List[str] = field(default_factory=list)

    def url(self, path: str) -> str:
        return raw_file_url(self.repo.name, self.repo.default_branch, path)

    def exists(self, path: str) -> bool:
        return self.probe.exists(self.url(path))

    def read(self, path: str) -> str:
        return self.probe.fetch_body(self.url(path))

    def observation(self) -> Observation:
        return Observation(
            nodejs=self.nodejs,
            uses_corepack=self.uses_corepack,
            has_lockfile=self.has_lockfile,
        )


@dataclass(frozen=True)
class MarkerRule:
    """A marker file (or set of equivalent files) and how to read it."""
    paths: Tuple[str, ...]
    detect: Callable[[_Scan, str], ClassificationResult]


def _detect_package_lock(scan: _Scan, path: str) -> ClassificationResult:
    version = lockfiles.parse_package_lock_version(scan.read(path))
    return ClassificationResult(PackageManagers.NPM, version)


def _detect_npm_shrinkwrap(scan: _Scan, path: str) -> ClassificationResult:
    return ClassificationResult(PackageManagers.NPM, Constants.UNKNOWN_VERSION)


def _detect_yarn_lock(scan: _Scan, path: str) -> ClassificationResult:
    content = scan.read(path)
    if lockfiles.is_yarn_classic_lock(content):
        return ClassificationResult(PackageManagers.YARN_CLASSIC, lockfiles.YARN_CLASSIC_VERSION)
    return ClassificationResult(
        PackageManagers.YARN_MODERN, lockfiles.parse_yarn_berry_version(content)
    )


def _detect_pnpm_lock(scan: _Scan, path: str) -> ClassificationResult:
    version = lockfiles.parse_pnpm_lock_version(scan.read(path))
    return ClassificationResult(PackageManagers.PNPM, version)


def _detect_bun_lock(scan: _Scan, path: str) -> ClassificationResult:
    return ClassificationResult(PackageManagers.BUN, lockfiles.BUN_VERSION)


MARKER_RULES: Sequence[MarkerRule] = (
    MarkerRule((Constants.PACKAGE_LOCK_FILE,), _detect_package_lock),
    MarkerRule((Constants.NPM_SHRINKWRAP_FILE,), _detect_npm_shrinkwrap),
    MarkerRule((Constants.YARN_LOCK_FILE,), _detect_yarn_lock),
    MarkerRule((Constants.PNPM_LOCK_FILE,), _detect_pnpm_lock),
    MarkerRule((Constants.BUN_LOCKB_FILE, Constants.BUN_LOCK_FILE), _detect_bun_lock),
)

# README.md is deliberately absent: it often documents several managers.
# CONTRIBUTING.md targets contributors, so it names the one actually used.
DOCUMENT_SOURCES: Sequence[str] = (
    Constants.CONTRIBUTING_FILE,
    Constants.CI_WORKFLOW_FILE,
)


def _load_manifest(raw: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("  Invalid package.json")
        return None
    if not isinstance(data, dict):
        logger.warning("  Invalid package.json")
        return None
    return data


def _step_package_json(scan: _Scan) -> Optional[ClassificationResult]:
    if scan.exists(Constants.PACKAGE_JSON_FILE):
        try:
            scan.raw_manifest = scan.read(Constants.PACKAGE_JSON_FILE)
        except RemoteNotFound:
            logger.warning("  package.json indexed as present but not found")
        else:
            scan.manifest = _load_manifest(scan.raw_manifest)
            return None
    logger.debug("  Non-Node.js project")
    scan.nodejs = False
    return ClassificationResult.non_nodejs()


def _step_corepack(scan: _Scan) -> Optional[ClassificationResult]:
    if scan.manifest is None:
        return None
    declared = scan.manifest.get("packageManager")
    if not declared:
        logger.debug("    No packageManager found")
        scan.uses_corepack = False
        return None
    logger.debug("    Found packageManager")
    scan.uses_corepack = True
    return parse_package_manager_field(declared)


def _step_markers(scan: _Scan) -> Optional[ClassificationResult]:
    for rule in MARKER_RULES:
        for path in rule.paths:
            if not scan.exists(path):
                continue
            try:
                result = rule.detect(scan, path)
            except RemoteNotFound:
                logger.warning("  %s indexed as present but not found", path)
                continue
            scan.has_lockfile = True
            scan.trace.append(path)
            return result
    scan.has_lockfile = False
    return None


def _step_scripts(scan: _Scan) -> Optional[ClassificationResult]:
    if not scan.raw_manifest:
        return None
    manager = match_signals(scan.raw_manifest, SCRIPT_SIGNALS)
    if manager is None:
        return None
    scan.trace.append(Constants.PACKAGE_JSON_FILE)
    return ClassificationResult(manager)


def _step_documents(scan: _Scan) -> Optional[ClassificationResult]:
    for path in DOCUMENT_SOURCES:
        if not scan.exists(path):
            continue
        try:
            text = scan.read(path)
        except RemoteNotFound:
            logger.warning("  %s indexed as present but not found", path)
            continue
        manager = match_signals(text, DOCUMENT_SIGNALS)
        if manager is not None:
            scan.trace.append(path)
            return ClassificationResult(manager)
    return None


CASCADE: Sequence[Callable[[_Scan], Optional[ClassificationResult]]] = (
    _step_package_json,
    _step_corepack,
    _step_markers,
    _step_scripts,
    _step_documents,
)


def classify(repo: RepositoryIdentity, probe: FileProbe) -> Classification:
    """Classify the package manager of ``repo``.

    Returns:
        The classification result and the bookkeeping observation.

    Raises:
        TransportError: a probe failed with anything but a 404.
        ClassificationError: an unrecognized Corepack declaration or an
            unrecoverable package-lock.json.
    """
    scan = _Scan(repo=repo, probe=probe)
    for step in CASCADE:
        result = step(scan)
        if result is not None:
            break
    else:
        logger.debug("  No package manager detected")
        result = ClassificationResult.unknown()

    if result.is_nodejs and result.package_manager is not PackageManagers.UNKNOWN:
        logger.debug("  %s detected", result.package_manager.value)
    if is_debug_enabled(logger):
        logger.debug(
            "Classified repository",
            extra=extra_context(
                event="decision",
                component="engine",
                action="classify",
                target=repo.name,
                outcome=result.package_manager.value if result.package_manager else "non_nodejs",
                version=result.version,
                evidence=",".join(scan.trace) or None
            )
        )
    return result, scan.observation()


def classify_all(
    repos: Sequence[RepositoryIdentity],
    probe: FileProbe,
    stats: Any,
    *,
    max_workers: int = 1,
    strict: bool = False,
) -> List[ClassificationResult]:
    """Classify ``repos`` and fold every outcome into ``stats`` in input order.

    With ``max_workers > 1`` (and not ``strict``) repositories are classified
    on a bounded thread pool; results are still folded one at a time, in input
    order, on the calling thread. The first fatal error cancels pending work
    and propagates.
    """
    total = len(repos)
    results: List[ClassificationResult] = []

    def _fold(outcome: Classification) -> None:
        result, observation = outcome
        stats.record(result, observation)
        results.append(result)

    if strict or max_workers <= 1:
        for index, repo in enumerate(repos):
            logger.debug("%s (%d/%d)", repo.name, index + 1, total)
            _fold(classify(repo, probe))
        return results

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = [executor.submit(classify, repo, probe) for repo in repos]
        for index, (repo, future) in enumerate(zip(repos, futures)):
            outcome = future.result()
            logger.debug("%s (%d/%d)", repo.name, index + 1, total)
            _fold(outcome)
    except BaseException:
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results
