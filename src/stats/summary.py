"""Human-readable run summary, logged at the end of a run or on demand."""

from __future__ import annotations

from typing import List, Mapping

from constants import PackageManagers
from stats.aggregate import AggregateStats
from stats.versions import count_major_variants, merge_version_stats, version_sort_key

PACKAGE_MANAGER_LABELS: Mapping[str, str] = {
    PackageManagers.NPM.value: "npm",
    PackageManagers.YARN_CLASSIC.value: "Yarn Classic",
    PackageManagers.YARN_MODERN.value: "Yarn (Berry)",
    PackageManagers.PNPM.value: "pnpm",
    PackageManagers.BUN.value: "Bun",
    PackageManagers.UNKNOWN.value: "Unknown",
}


def _percent(value: int, total: int) -> str:
    return f"{(value / total * 100) if total else 0:.1f}%"


def render_summary(stats: AggregateStats, date: str = "") -> str:
    """Return a plain-text summary: overall counters, manager shares, versions.

    Version sections use merged histograms and are only shown for managers
    with more than one major in use. A footnote marks sections where a bucket
    absorbed other labels.
    """
    lines: List[str] = []
    lines.append(f"Package manager usage{f' ({date})' if date else ''}")
    lines.append("")
    overall = stats.overall_document()
    lines.append(
        f"Repositories: {overall['total']} | Node.js: {overall['nodejs']} | "
        f"non-Node.js: {overall['non_nodejs']}"
    )
    lines.append(
        f"Corepack: {overall['uses_corepack']} | no Corepack: {overall['does_not_use_corepack']} | "
        f"lockfile: {overall['has_lockfile']} | no lockfile: {overall['does_not_have_lockfile']}"
    )
    lines.append("")

    known = {
        pm: count for pm, count in stats.managers.items()
        if pm != PackageManagers.UNKNOWN.value and count > 0
    }
    known_total = sum(known.values())
    for pm, count in sorted(known.items(), key=lambda kv: kv[1], reverse=True):
        lines.append(f"  {PACKAGE_MANAGER_LABELS[pm]:<14} {count:>6} ({_percent(count, known_total)})")
    lines.append(f"  {PACKAGE_MANAGER_LABELS['unknown']:<14} {stats.managers.get('unknown', 0):>6}")

    for pm, histogram in stats.versions.items():
        result = merge_version_stats(histogram)
        total = sum(result.merged.values())
        if not result.merged or total == 0 or count_major_variants(result.merged) <= 1:
            continue
        lines.append("")
        lines.append(f"{PACKAGE_MANAGER_LABELS[pm]} versions{' *' if result.had_merges else ''}")
        for label in sorted(result.merged, key=version_sort_key, reverse=True):
            value = result.merged[label]
            lines.append(f"  {label:<14} {value:>6} ({_percent(value, total)})")
        if result.had_merges:
            lines.append(
                f"  * {PACKAGE_MANAGER_LABELS[pm]} version cannot always be accurately derived; "
                "may be guessed from lockfile"
            )

    return "\n".join(lines) + "\n"
