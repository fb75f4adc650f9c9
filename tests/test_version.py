"""Tests for the package version metadata."""

import pytest
from packaging.version import Version

import fightlog
from fightlog import _version as version_module


def test_version_is_semver_patch():
    version = Version(fightlog.__version__)

    assert len(version.release) == 3


def test_version_override_from_environment(monkeypatch):
    monkeypatch.setenv("FIGHTLOG_VERSION", "9.8.7")

    assert version_module._load_version() == "9.8.7"


@pytest.mark.parametrize("value", ["invalid-version", "1.2"])
def test_invalid_version_override_is_rejected(monkeypatch, value):
    monkeypatch.setenv("FIGHTLOG_VERSION", value)

    with pytest.raises(RuntimeError):
        version_module._load_version()
