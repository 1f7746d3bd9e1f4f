"""
Pytest configuration and fixtures for ChatTrail tests.
"""

import json
import os
import sqlite3

import pytest


def is_ci():
    """Check if running in CI environment."""
    return os.environ.get("CI") == "true" or os.environ.get("GITHUB_ACTIONS") == "true"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "local_only: mark test to run only locally (skipped in CI)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip local_only tests when running in CI."""
    if not is_ci():
        return

    skip_ci = pytest.mark.skip(reason="Test requires local resources (skipped in CI)")
    for item in items:
        if "local_only" in item.keywords:
            item.add_marker(skip_ci)


@pytest.fixture
def is_local():
    """Fixture to check if running locally (not in CI)."""
    return not is_ci()


@pytest.fixture
def skip_in_ci():
    """Fixture to skip test if running in CI."""
    if is_ci():
        pytest.skip("Skipped in CI - requires local resources")


def write_state_db(db_path, items):
    """Create a Cursor-style state.vscdb holding the given key -> value items."""
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
    for key, value in items.items():
        if not isinstance(value, str):
            value = json.dumps(value)
        conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (key, value))
    conn.commit()
    conn.close()


@pytest.fixture
def workspace_storage(tmp_path, monkeypatch):
    """
    A fake workspaceStorage directory.

    Returns a factory: make(workspace_id, prompts=None, generations=None,
    composers=None, folder=None) creates one workspace and returns its dir.
    """
    storage = tmp_path / "workspaceStorage"
    storage.mkdir()
    monkeypatch.delenv("CHATTRAIL_WORKSPACE_STORAGE", raising=False)

    def make(workspace_id, prompts=None, generations=None, composers=None, folder=None, raw=None):
        workspace_dir = storage / workspace_id
        workspace_dir.mkdir()

        items = dict(raw or {})
        if prompts is not None:
            items["aiService.prompts"] = prompts
        if generations is not None:
            items["aiService.generations"] = generations
        if composers is not None:
            items["composer.composerData"] = composers
        write_state_db(workspace_dir / "state.vscdb", items)

        if folder:
            (workspace_dir / "workspace.json").write_text(json.dumps({"folder": folder}))
        return workspace_dir

    make.path = storage
    return make
