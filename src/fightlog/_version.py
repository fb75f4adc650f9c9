"""Package version lookup.

The version comes from ``$FIGHTLOG_VERSION`` when set, then from the
installed distribution metadata and finally from the newest ``## vX.Y.Z``
heading of ``CHANGELOG.md`` in a source checkout.
"""

from __future__ import annotations

import os
import re
from importlib import metadata
from pathlib import Path
from typing import Iterator

from packaging.version import InvalidVersion, Version

VERSION_OVERRIDE_ENV_VAR = "FIGHTLOG_VERSION"
DISTRIBUTION_NAME = "fightlog"

_CHANGELOG_HEADING = re.compile(r"^## v(?P<version>\d+\.\d+\.\d+)\b")


def _changelog_candidates() -> Iterator[Path]:
    # src/fightlog/_version.py -> the checkout root is two levels above the package.
    for parent in Path(__file__).resolve().parents[1:3]:
        yield parent / "CHANGELOG.md"


def _version_from_changelog() -> str:
    for changelog in _changelog_candidates():
        if not changelog.is_file():
            continue
        for line in changelog.read_text(encoding="utf-8").splitlines():
            match = _CHANGELOG_HEADING.match(line)
            if match:
                return match.group("version")
    raise RuntimeError(
        f"Unable to determine the '{DISTRIBUTION_NAME}' version: the package is not "
        "installed and no CHANGELOG.md heading was found."
    )


def _load_version() -> str:
    raw_version = os.environ.get(VERSION_OVERRIDE_ENV_VAR)
    if not raw_version:
        try:
            raw_version = metadata.version(DISTRIBUTION_NAME)
        except metadata.PackageNotFoundError:
            raw_version = _version_from_changelog()

    try:
        release = Version(raw_version).release
    except InvalidVersion as exc:
        raise RuntimeError(f"Invalid '{DISTRIBUTION_NAME}' version {raw_version!r}") from exc
    if len(release) != 3:
        raise RuntimeError(
            f"'{DISTRIBUTION_NAME}' versions use MAJOR.MINOR.PATCH; found {raw_version!r}"
        )
    return raw_version


__version__ = _load_version()

__all__ = ["__version__"]
