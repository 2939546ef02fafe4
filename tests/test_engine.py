"""Tests for the classification cascade."""

import json
import threading
import time

import pytest

from constants import PackageManagers
from common.errors import ClassificationError, RemoteNotFound, TransportError
from detection.engine import classify, classify_all
from detection.models import ClassificationResult, RepositoryIdentity
from probe.remote import raw_file_url
from stats.aggregate import AggregateStats


class FakeProbe:
    """In-memory stand-in for FileProbe keyed by raw file URL."""

    def __init__(self, files_by_repo=None, failing=(), stale=()):
        self.files = {}
        self.failing = set(failing)
        # indexed as present, but the body is gone
        self.stale = set(stale)
        self.calls = []
        for repo, files in (files_by_repo or {}).items():
            for path, body in files.items():
                self.files[raw_file_url(repo.name, repo.default_branch, path)] = body

    def exists(self, url):
        self.calls.append(("exists", url))
        if url in self.failing:
            raise TransportError(url, 500, "Internal Server Error")
        return url in self.files or url in self.stale

    def fetch_body(self, url):
        self.calls.append(("fetch_body", url))
        if url not in self.files:
            raise RemoteNotFound(url)
        return self.files[url]

    def probed_paths(self):
        return [url.rsplit("/main/", 1)[-1] for kind, url in self.calls if kind == "exists"]


REPO = RepositoryIdentity("acme/widget", "main")


def run(files, repo=REPO, stale=()):
    stale_urls = [raw_file_url(repo.name, repo.default_branch, path) for path in stale]
    probe = FakeProbe({repo: files}, stale=stale_urls)
    result, observation = classify(repo, probe)
    return result, observation, probe


def package_json(**fields):
    return json.dumps({"name": "widget", **fields}, indent=2)


class TestNonNodejs:
    """Repositories without package.json."""

    def test_no_package_json(self):
        result, observation, probe = run({"README.md": "# hi", "yarn.lock": "# yarn lockfile v1\n"})
        assert result == ClassificationResult.non_nodejs()
        assert result.is_nodejs is False
        assert observation.nodejs is False
        assert observation.uses_corepack is None
        assert observation.has_lockfile is None
        assert probe.probed_paths() == ["package.json"]


class TestCorepack:
    """packageManager declarations short-circuit the cascade."""

    def test_declaration_wins_over_lockfile(self):
        result, observation, probe = run({
            "package.json": package_json(packageManager="pnpm@8.6.0"),
            "package-lock.json": '{"lockfileVersion": 3}',
        })
        assert result == ClassificationResult(PackageManagers.PNPM, "8")
        assert observation.uses_corepack is True
        assert observation.has_lockfile is None
        assert "package-lock.json" not in probe.probed_paths()

    def test_declaration_wins_over_yarn_lock(self):
        result, _, _ = run({
            "package.json": package_json(packageManager="pnpm@8.6.0"),
            "yarn.lock": "# yarn lockfile v1\n",
        })
        assert result == ClassificationResult(PackageManagers.PNPM, "8")

    def test_unknown_declaration_is_fatal(self):
        with pytest.raises(ClassificationError):
            run({"package.json": package_json(packageManager="deno@1.40.0")})

    def test_invalid_package_json_skips_corepack_counter(self):
        result, observation, _ = run({
            "package.json": "{ this is not json",
            "yarn.lock": "# yarn lockfile v1\n",
        })
        assert result == ClassificationResult(PackageManagers.YARN_CLASSIC, "1")
        assert observation.uses_corepack is None
        assert observation.has_lockfile is True


class TestMarkers:
    """Lockfiles and other marker files."""

    def test_package_lock(self):
        result, observation, _ = run({
            "package.json": package_json(),
            "package-lock.json": '{"lockfileVersion": 2}',
        })
        assert result == ClassificationResult(PackageManagers.NPM, "7 or 8")
        assert observation.uses_corepack is False
        assert observation.has_lockfile is True

    def test_shrinkwrap_is_npm_unknown_version(self):
        result, _, _ = run({"package.json": package_json(), "npm-shrinkwrap.json": "{}"})
        assert result == ClassificationResult(PackageManagers.NPM, "unknown")

    def test_yarn_modern(self):
        result, _, _ = run({
            "package.json": package_json(),
            "yarn.lock": "# generated\n\n__metadata:\n  version: 8\n  cacheKey: 10c0\n",
        })
        assert result == ClassificationResult(PackageManagers.YARN_MODERN, "4")

    def test_pnpm(self):
        result, _, _ = run({"package.json": package_json(), "pnpm-lock.yaml": "lockfileVersion: '9.0'\n"})
        assert result == ClassificationResult(PackageManagers.PNPM, "9 or 10")

    @pytest.mark.parametrize("lockfile", ["bun.lockb", "bun.lock"])
    def test_bun(self, lockfile):
        result, _, _ = run({"package.json": package_json(), lockfile: ""})
        assert result == ClassificationResult(PackageManagers.BUN, "1")

    def test_yarn_classic(self):
        result, observation, _ = run({"package.json": package_json(), "yarn.lock": "# yarn lockfile v1\n\n"})
        assert result == ClassificationResult(PackageManagers.YARN_CLASSIC, "1")
        assert observation.has_lockfile is True

    def test_classic_header_wins_over_berry_metadata(self):
        """The v1 header decides, whatever metadata block follows it."""
        result, _, _ = run({
            "package.json": package_json(),
            "yarn.lock": "# yarn lockfile v1\n\n__metadata:\n  version: 8\n  cacheKey: 10c0\n",
        })
        assert result == ClassificationResult(PackageManagers.YARN_CLASSIC, "1")

    def test_marker_order(self):
        """package-lock.json is checked before yarn.lock."""
        result, _, probe = run({
            "package.json": package_json(),
            "package-lock.json": '{"lockfileVersion": 1}',
            "yarn.lock": "# yarn lockfile v1\n",
        })
        assert result.package_manager is PackageManagers.NPM
        assert "yarn.lock" not in probe.probed_paths()

    def test_failed_probe_propagates(self):
        url = raw_file_url(REPO.name, REPO.default_branch, "yarn.lock")
        probe = FakeProbe({REPO: {"package.json": package_json()}}, failing=[url])
        with pytest.raises(TransportError):
            classify(REPO, probe)


class TestTextSignals:
    """Repositories without any marker file."""

    def test_scripts(self):
        result, observation, _ = run({
            "package.json": package_json(scripts={"test": "pnpm run -r test"}),
        })
        assert result == ClassificationResult(PackageManagers.PNPM)
        assert result.version is None
        assert observation.has_lockfile is False

    def test_yarn_mention_is_unknown(self):
        result, _, _ = run({"package.json": package_json(scripts={"build": "yarn tsc"})})
        assert result == ClassificationResult.unknown()

    def test_contributing_before_ci(self):
        result, _, _ = run({
            "package.json": package_json(),
            "CONTRIBUTING.md": "Run `bun install` first.",
            ".github/workflows/ci.yml": "- run: npm ci",
        })
        assert result == ClassificationResult(PackageManagers.BUN)

    def test_ci_workflow(self):
        result, _, _ = run({
            "package.json": package_json(),
            "CONTRIBUTING.md": "Please be nice.",
            ".github/workflows/ci.yml": "steps:\n  - run: npm ci\n",
        })
        assert result == ClassificationResult(PackageManagers.NPM)

    def test_nothing_found_is_unknown(self):
        result, observation, _ = run({"package.json": package_json()})
        assert result == ClassificationResult.unknown()
        assert observation.nodejs is True
        assert observation.uses_corepack is False
        assert observation.has_lockfile is False


class TestClassifyAll:
    """Folding outcomes into run statistics."""

    def _repos(self):
        repos = [RepositoryIdentity(f"acme/r{i}", "main") for i in range(6)]
        files = {
            repos[0]: {"package.json": package_json(packageManager="yarn@4.1.0")},
            repos[1]: {"package.json": package_json(), "package-lock.json": '{"lockfileVersion": 3}'},
            repos[2]: {"package.json": package_json(), "pnpm-lock.yaml": "lockfileVersion: 5.4\n"},
            repos[3]: {},
            repos[4]: {"package.json": package_json()},
            repos[5]: {"package.json": package_json(), "package-lock.json": '{"lockfileVersion": 3}'},
        }
        return repos, files

    def test_counters(self):
        repos, files = self._repos()
        stats = AggregateStats(total=len(repos))
        results = classify_all(repos, FakeProbe(files), stats)

        assert [r.package_manager for r in results] == [
            PackageManagers.YARN_MODERN,
            PackageManagers.NPM,
            PackageManagers.PNPM,
            None,
            PackageManagers.UNKNOWN,
            PackageManagers.NPM,
        ]
        assert stats.overall == {
            "total": 6,
            "nodejs": 5,
            "non_nodejs": 1,
            "uses_corepack": 1,
            "does_not_use_corepack": 4,
            "has_lockfile": 3,
            "does_not_have_lockfile": 1,
        }
        assert stats.managers["npm"] == 2
        assert stats.managers["unknown"] == 1
        assert stats.versions["npm"] == {"9 or 10 or 11": 2}
        assert stats.versions["yarn_modern"] == {"4": 1}
        assert stats.versions[PackageManagers.PNPM.value] == {"7": 1}

    def test_counter_invariants(self):
        repos, files = self._repos()
        stats = AggregateStats(total=len(repos))
        classify_all(repos, FakeProbe(files), stats)
        overall = stats.overall
        assert overall["nodejs"] + overall["non_nodejs"] == overall["total"]
        assert overall["uses_corepack"] + overall["does_not_use_corepack"] <= overall["nodejs"]
        assert overall["has_lockfile"] + overall["does_not_have_lockfile"] <= overall["nodejs"]
        assert sum(stats.managers.values()) == overall["nodejs"]

    def test_pool_matches_sequential(self):
        repos, files = self._repos()
        sequential = AggregateStats(total=len(repos))
        pooled = AggregateStats(total=len(repos))
        seq_results = classify_all(repos, FakeProbe(files), sequential)
        pool_results = classify_all(repos, FakeProbe(files), pooled, max_workers=4)
        assert seq_results == pool_results
        assert sequential == pooled

    def test_pool_folds_in_input_order(self):
        """Later repositories finishing first does not reorder results."""
        repos, files = self._repos()
        first_url = raw_file_url(repos[0].name, "main", "package.json")
        release = threading.Event()

        class SlowFirstProbe(FakeProbe):
            def exists(self, url):
                if url == first_url:
                    release.wait(timeout=2)
                else:
                    release.set()
                    time.sleep(0.01)
                return super().exists(url)

        stats = AggregateStats(total=len(repos))
        results = classify_all(repos, SlowFirstProbe(files), stats, max_workers=3)
        assert results[0].package_manager is PackageManagers.YARN_MODERN
        assert results[3].package_manager is None

    def test_fatal_error_stops_run(self):
        repos, files = self._repos()
        files[repos[1]] = {"package.json": package_json(packageManager="volta@1.0.0")}
        stats = AggregateStats(total=len(repos))
        with pytest.raises(ClassificationError):
            classify_all(repos, FakeProbe(files), stats, strict=True)
        assert stats.managers[PackageManagers.YARN_MODERN.value] == 1
        assert stats.overall["nodejs"] == 1


class TestVanishedFiles:
    """Files the exists index reports but whose body fetch is a 404."""

    def test_package_json_gone_is_non_nodejs(self):
        result, observation, _ = run({}, stale=["package.json"])
        assert result == ClassificationResult.non_nodejs()
        assert observation.nodejs is False

    def test_lockfile_gone_falls_through_to_next_marker(self):
        result, observation, _ = run(
            {"package.json": package_json(), "yarn.lock": "# yarn lockfile v1\n"},
            stale=["package-lock.json"],
        )
        assert result == ClassificationResult(PackageManagers.YARN_CLASSIC, "1")
        assert observation.has_lockfile is True

    def test_only_lockfile_gone_means_no_lockfile(self):
        result, observation, _ = run({"package.json": package_json()}, stale=["pnpm-lock.yaml"])
        assert result == ClassificationResult.unknown()
        assert observation.has_lockfile is False

    def test_document_gone_is_skipped(self):
        result, _, _ = run(
            {"package.json": package_json(), ".github/workflows/ci.yml": "- run: npm ci\n"},
            stale=["CONTRIBUTING.md"],
        )
        assert result == ClassificationResult(PackageManagers.NPM)
