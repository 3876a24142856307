import time
import pytest
import sys
from pathlib import Path

# Load shared fixtures from tests._fixtures so pytest discovers them
pytest_plugins = [
    "tests._fixtures.conftest",
    "tests._fixtures.frozen_time",
]

# Ensure the project `src` package is importable during pytest collection.
# This mirrors editable installs by adding the repository `src/` to sys.path.
root = Path(__file__).resolve().parent.parent
src_path = str(root / "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


@pytest.fixture(autouse=True)
def no_sleep(mocker):
    """Prevent actual sleeping in tests to speed up retry/backoff paths."""
    mocker.patch.object(time, "sleep", lambda s: None)


@pytest.fixture(autouse=True)
def block_network(mocker):
    """Autouse fixture: prevent any test from performing real network calls"""
    from tests._fixtures.remote_api_responses import canned_api_factory

    mocker.patch(
        "requests.Session.request",
        return_value=canned_api_factory("empty", status=599),
    )
    yield


@pytest.fixture(autouse=True)
def clean_action_env(monkeypatch):
    """Drop runner variables and inputs inherited from the environment running the tests."""
    import os

    for name in list(os.environ):
        if name.startswith(("INPUT_", "CDN_")) or name in ("GITHUB_OUTPUT", "GITHUB_ACTIONS"):
            monkeypatch.delenv(name, raising=False)
    yield
