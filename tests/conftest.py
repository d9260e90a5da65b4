import json
import os

import pytest

from patchgate.core.config import get_settings
from patchgate.core.flags import FeatureFlags, get_feature_flags


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Run every test from an empty directory with a fresh settings cache."""
    monkeypatch.chdir(tmp_path)
    for var in list(os.environ):
        if var.startswith("PATCHGATE_"):
            monkeypatch.delenv(var)
    get_settings.cache_clear()
    get_feature_flags.cache_clear()
    yield
    get_settings.cache_clear()
    get_feature_flags.cache_clear()


@pytest.fixture
def flags():
    """Feature flags with declared defaults only."""
    return FeatureFlags(environ={})


@pytest.fixture
def write_manifest(tmp_path):
    """Write a package.json with the given patchedDependencies map."""

    def _write(patched, directory=None):
        root = directory or tmp_path
        path = root / "package.json"
        path.write_text(json.dumps({"name": "app", "patchedDependencies": patched}))
        return path

    return _write
