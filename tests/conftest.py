"""Pytest configuration for shimrun tests."""

import sys

import pytest
from shimrun.resolution.aliases import reset_alias_matcher
from shimrun.settings import ENV_ALIAS_CONFIG
from shimrun.settings import ENV_DISABLE_CACHE
from shimrun.settings import ENV_IPC_FD
from shimrun.settings import ENV_TRANSFORM_COMMAND
from shimrun.settings import ENV_TRANSFORMER


@pytest.fixture(autouse=True)
def clean_loader_env(monkeypatch):
    """Each test starts without loader environment and without a cached alias matcher."""
    for name in (ENV_ALIAS_CONFIG, ENV_DISABLE_CACHE, ENV_TRANSFORMER, ENV_TRANSFORM_COMMAND, ENV_IPC_FD):
        monkeypatch.delenv(name, raising=False)
    reset_alias_matcher()
    yield
    reset_alias_matcher()


@pytest.fixture
def restore_import_state():
    """Snapshot sys.path, sys.meta_path and sys.modules around a test that imports."""
    path = list(sys.path)
    meta_path = list(sys.meta_path)
    modules = set(sys.modules)
    main = sys.modules.get("__main__")
    yield
    sys.path[:] = path
    sys.meta_path[:] = meta_path
    for name in set(sys.modules) - modules:
        del sys.modules[name]
    if main is not None:
        sys.modules["__main__"] = main
