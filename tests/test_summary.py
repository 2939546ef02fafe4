"""Tests for the plain-text run summary."""

from stats.aggregate import AggregateStats
from stats.summary import render_summary


def _stats():
    stats = AggregateStats.from_documents(
        {"total": 10, "nodejs": 8, "non_nodejs": 2, "uses_corepack": 3,
         "does_not_use_corepack": 5, "has_lockfile": 4, "does_not_have_lockfile": 1},
        {"npm": 4, "yarn_classic": 0, "yarn_modern": 0, "pnpm": 3, "bun": 0, "unknown": 1},
        {"npm": {"9 or 10 or 11": 4}, "pnpm": {"3": 1, "3 or 4 or 5": 1, "8": 1},
         "yarn_classic": {}, "yarn_modern": {}, "bun": {}},
    )
    return stats


def test_overall_and_shares():
    text = render_summary(_stats(), "2024-03-09")
    assert text.startswith("Package manager usage (2024-03-09)\n")
    assert "Repositories: 10 | Node.js: 8 | non-Node.js: 2" in text
    assert "npm" in text and "(57.1%)" in text
    assert "pnpm" in text and "(42.9%)" in text
    assert text.endswith("\n")


def test_known_managers_sorted_by_count():
    text = render_summary(_stats())
    assert text.index("  npm ") < text.index("  pnpm ")


def test_version_section_only_for_multiple_majors():
    text = render_summary(_stats())
    assert "pnpm versions *" in text
    assert "3 or 4 or 5" in text
    assert "pnpm version cannot always be accurately derived" in text
    assert "npm versions" not in text.replace("pnpm versions", "")


def test_empty_stats():
    text = render_summary(AggregateStats())
    assert "Repositories: 0" in text
    assert f"{'Unknown':<14}" in text
