"""Version histogram normalization for reporting.

Lockfile schema versions frequently map to several possible tool majors, so
raw histograms mix concrete labels (``"3"``) with ambiguous ones
(``"3 or 4 or 5"``). For reporting, every observation that could resolve to
the same ambiguity set is collapsed into that set's bucket.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from constants import Constants

SEPARATOR = Constants.VERSION_SEPARATOR
UNKNOWN = Constants.UNKNOWN_VERSION

_NUMBERS = re.compile(r"\d+")


@dataclass(frozen=True)
class MergeResult:
    """Merged histogram plus whether any bucket absorbed another label."""
    merged: Dict[str, int]
    had_merges: bool


def normalize_label(label: str) -> str:
    """Normalize a version label; older result files joined with ``_or_``."""
    return str(label).replace("_", " ")


def is_ambiguous(label: str) -> bool:
    return SEPARATOR in normalize_label(label)


def split_label(label: str) -> Tuple[str, ...]:
    """Return the concrete tokens of a label (one token for concrete labels)."""
    return tuple(t.strip() for t in normalize_label(label).split(SEPARATOR) if t.strip())


def _token_groups(raw: Mapping[str, int]) -> Dict[str, str]:
    groups: Dict[str, str] = {}
    for label in raw:
        if not is_ambiguous(label):
            continue
        group = normalize_label(label)
        for token in split_label(group):
            groups.setdefault(token, group)
    return groups


def resolve_group(label: str, token_groups: Mapping[str, str]) -> str:
    """Return the bucket ``label`` is counted under."""
    normalized = normalize_label(label)
    if SEPARATOR in normalized:
        return normalized
    return token_groups.get(normalized, normalized)


def merge_version_stats(raw: Mapping[str, int]) -> MergeResult:
    """Collapse a raw version histogram into ambiguity-set buckets.

    ``"unknown"`` and non-positive counts are dropped. Each concrete token
    that appears inside an ambiguous label is counted under the first such
    label seen. ``had_merges`` is True when a label was moved to a different
    bucket or two labels landed in the same bucket.
    """
    token_groups = _token_groups(raw)
    merged: Dict[str, int] = {}
    had_merges = False

    for label, count in raw.items():
        if label == UNKNOWN or count <= 0:
            continue
        group = resolve_group(label, token_groups)
        had_merges = had_merges or group != normalize_label(label) or group in merged
        merged[group] = merged.get(group, 0) + count

    return MergeResult(merged=merged, had_merges=had_merges)


def extract_major(label: str) -> str:
    """Return the first number in ``label`` (the label itself if it has none)."""
    match = _NUMBERS.search(label)
    return match.group(0) if match else normalize_label(label)


def count_major_variants(histogram: Mapping[str, int]) -> int:
    """Count distinct leading majors among known, positive-count labels."""
    return len(
        {extract_major(label) for label, count in histogram.items() if label != UNKNOWN and count > 0}
    )


def version_sort_key(label: str) -> int:
    """Numeric ordering key: major, then minor, then patch."""
    numbers = [int(n) for n in _NUMBERS.findall(label)]
    major, minor, patch = (numbers + [0, 0, 0])[:3]
    return major * 1_000_000 + minor * 1_000 + patch
