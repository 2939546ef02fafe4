"""Run-level aggregation of classification outcomes and its persistence.

One ``AggregateStats`` lives for one run, is fed one repository at a time by
a single consumer, and is written out once, after the whole iteration, as
three dated JSON documents:

* ``<date>-stats.json``                         overall counters
* ``<date>-package-manager-stats.json``         count per package manager
* ``<date>-package-manager-version-stats.json`` raw version histograms
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from constants import Constants, PackageManagers
from detection.models import VERSIONED_MANAGERS, ClassificationResult, Observation

logger = logging.getLogger(__name__)

OVERALL_FIELDS = (
    "total",
    "nodejs",
    "non_nodejs",
    "uses_corepack",
    "does_not_use_corepack",
    "has_lockfile",
    "does_not_have_lockfile",
)

STATS_SUFFIX = "stats.json"
MANAGER_STATS_SUFFIX = "package-manager-stats.json"
VERSION_STATS_SUFFIX = "package-manager-version-stats.json"

_DATED_FILE = re.compile(r"^(\d{4}-\d{2}-\d{2})-(.+)$")


class AggregateStats:
    """Counters accumulated over one run."""

    def __init__(self, total: int = 0):
        self.overall: Dict[str, int] = {name: 0 for name in OVERALL_FIELDS}
        self.overall["total"] = total
        self.managers: Dict[str, int] = {pm.value: 0 for pm in PackageManagers}
        self.versions: Dict[str, Dict[str, int]] = {pm.value: {} for pm in VERSIONED_MANAGERS}

    def record(self, result: ClassificationResult, observation: Observation) -> None:
        """Fold one repository's classification into the counters."""
        if not observation.nodejs or result.package_manager is None:
            self.overall["non_nodejs"] += 1
            return

        self.overall["nodejs"] += 1
        if observation.uses_corepack is True:
            self.overall["uses_corepack"] += 1
        elif observation.uses_corepack is False:
            self.overall["does_not_use_corepack"] += 1
        if observation.has_lockfile is True:
            self.overall["has_lockfile"] += 1
        elif observation.has_lockfile is False:
            self.overall["does_not_have_lockfile"] += 1

        manager = result.package_manager.value
        self.managers[manager] += 1
        if result.version is not None and manager in self.versions:
            histogram = self.versions[manager]
            histogram[result.version] = histogram.get(result.version, 0) + 1

    def overall_document(self) -> Dict[str, int]:
        return dict(self.overall)

    def manager_document(self) -> Dict[str, int]:
        return dict(self.managers)

    def version_document(self) -> Dict[str, Dict[str, int]]:
        return {pm: dict(histogram) for pm, histogram in self.versions.items()}

    @classmethod
    def from_documents(
        cls,
        overall: Mapping[str, Any],
        managers: Mapping[str, Any],
        versions: Mapping[str, Mapping[str, Any]],
    ) -> "AggregateStats":
        """Rebuild stats from the three documents, as read back from disk."""
        stats = cls()
        stats.overall.update({k: int(v) for k, v in overall.items()})
        stats.managers.update({k: int(v) for k, v in managers.items()})
        for pm, histogram in versions.items():
            stats.versions[pm] = {str(label): int(count) for label, count in histogram.items()}
        return stats

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AggregateStats):
            return NotImplemented
        return (
            self.overall == other.overall
            and self.managers == other.managers
            and self.versions == other.versions
        )

    def __repr__(self) -> str:
        return f"AggregateStats(overall={self.overall!r}, managers={self.managers!r})"


def date_stamp(now: Optional[datetime] = None) -> str:
    """Calendar date (UTC) used to key result documents, as ``YYYY-MM-DD``."""
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")


def serialize_document(document: Mapping[str, Any]) -> str:
    """Two-space indented JSON with exactly one trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def result_paths(results_dir: str, date: str) -> Dict[str, str]:
    return {
        "stats": os.path.join(results_dir, f"{date}-{STATS_SUFFIX}"),
        "managers": os.path.join(results_dir, f"{date}-{MANAGER_STATS_SUFFIX}"),
        "versions": os.path.join(results_dir, f"{date}-{VERSION_STATS_SUFFIX}"),
    }


def write_results(stats: AggregateStats, results_dir: Optional[str] = None, date: Optional[str] = None) -> Dict[str, str]:
    """Write the three result documents and return their paths.

    Raises:
        OSError: the results directory or a document cannot be written.
    """
    results_dir = results_dir or Constants.RESULTS_DIR
    paths = result_paths(results_dir, date or date_stamp())
    documents = {
        "stats": stats.overall_document(),
        "managers": stats.manager_document(),
        "versions": stats.version_document(),
    }
    os.makedirs(results_dir, exist_ok=True)
    for key, path in paths.items():
        with open(path, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(serialize_document(documents[key]))
        logger.info("Results written to: %s", path)
    return paths


def _read_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected document shape in {path}")
    return data


def load_results(results_dir: str, date: str) -> AggregateStats:
    """Read the three documents of ``date`` back into an ``AggregateStats``.

    A missing overall-stats document is tolerated (older runs only kept the
    per-manager documents); the other two are required.
    """
    paths = result_paths(results_dir, date)
    overall = _read_json(paths["stats"]) if os.path.isfile(paths["stats"]) else {}
    return AggregateStats.from_documents(
        overall, _read_json(paths["managers"]), _read_json(paths["versions"])
    )


def _dates_with(results_dir: str, suffix: str) -> List[str]:
    dates = []
    for name in os.listdir(results_dir):
        match = _DATED_FILE.match(name)
        if match and match.group(2) == suffix:
            dates.append(match.group(1))
    return dates


def find_latest_date(results_dir: str) -> Optional[str]:
    """Latest date for which both per-manager documents exist, if any."""
    if not os.path.isdir(results_dir):
        return None
    manager_dates = set(_dates_with(results_dir, MANAGER_STATS_SUFFIX))
    version_dates = set(_dates_with(results_dir, VERSION_STATS_SUFFIX))
    common = sorted(manager_dates & version_dates)
    return common[-1] if common else None
