"""Textual package manager signals for repositories without a lockfile.

When no marker file settles the question, the classifier greps free text
(package.json scripts, CONTRIBUTING.md, the CI workflow) for command
invocations. A mention of ``yarn`` is recorded as ``unknown``: a bare
mention cannot tell Yarn Classic from Yarn Modern.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from constants import PackageManagers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextSignal:
    """A regex that, when found in a text, points at a package manager."""
    manager: PackageManagers
    pattern: "re.Pattern[str]"
    label: str


def _signal(manager: PackageManagers, regex: str, label: str) -> TextSignal:
    return TextSignal(manager, re.compile(regex, re.IGNORECASE), label)


# Checked against the raw package.json text, in order.
SCRIPT_SIGNALS: Sequence[TextSignal] = (
    _signal(PackageManagers.NPM, r"\bnpm (ci|install|run|test)", "npm"),
    # Yarn installs by running "yarn" and runs scripts with "yarn <script>"
    _signal(PackageManagers.UNKNOWN, r"\byarn", "Yarn"),
    _signal(PackageManagers.PNPM, r"\bpnpm (install|run|test)", "pnpm"),
    _signal(PackageManagers.BUN, r"\bbun (install|run|test)", "bun"),
    # npx without any other manager signal is an npm-oriented project
    _signal(PackageManagers.NPM, r"\bnpx\b", "npm (npx)"),
)

# Checked against CONTRIBUTING.md and the CI workflow, in order.
DOCUMENT_SIGNALS: Sequence[TextSignal] = (
    _signal(PackageManagers.NPM, r"\bnpm (ci|install|run|test)", "npm"),
    _signal(PackageManagers.UNKNOWN, r"\byarn", "Yarn"),
    _signal(PackageManagers.PNPM, r"\bpnpm (ci|install|run|test)", "pnpm"),
    # "bun i" and "bun install" only; "bun init" scaffolds a project and says nothing
    _signal(PackageManagers.BUN, r"\bbun i(nstall)?\b", "bun"),
)


def match_signals(text: str, signals: Sequence[TextSignal]) -> Optional[PackageManagers]:
    """Return the manager of the first signal found in ``text``, if any."""
    for signal in signals:
        if signal.pattern.search(text):
            if signal.manager is PackageManagers.UNKNOWN:
                logger.debug("  %s detected, but not sure which version", signal.label)
            return signal.manager
    return None
