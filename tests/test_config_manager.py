"""
Tests for ChatTrail configuration.
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config_manager import ConfigManager


class TestDefaults:
    """Test default configuration."""

    def test_defaults_without_file(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.json"))

        assert config.get('search.default_limit') == 10
        assert config.get('search.min_relevance') == 0.1
        assert config.get('search.min_problem_similarity') == 0.2
        assert config.get('server.socket_path') == '/tmp/chattrail.sock'
        assert config.output_format() == 'text'

    def test_loading_does_not_create_file(self, tmp_path):
        ConfigManager(str(tmp_path / "config.json"))
        assert not (tmp_path / "config.json").exists()

    def test_missing_key_returns_default(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.json"))
        assert config.get('search.nope', 'fallback') == 'fallback'
        assert config.get('search.default_limit.deeper') is None


class TestUserConfig:
    """Test merging a user file over defaults."""

    def test_user_values_override_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'search': {'default_limit': 25}, 'output': {'format': 'json'}}))

        config = ConfigManager(str(path))

        assert config.get('search.default_limit') == 25
        # Sibling keys survive the merge
        assert config.get('search.min_relevance') == 0.1
        assert config.output_format() == 'json'

    def test_invalid_json_uses_defaults(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        config = ConfigManager(str(path))

        assert config.get('search.default_limit') == 10
        assert 'Invalid config file' in caplog.text

    def test_unknown_output_format_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'output': {'format': 'yaml'}}))

        assert ConfigManager(str(path)).output_format() == 'text'

    def test_workspace_dirs(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'storage': {'workspace_dirs': ['/data/a', '~/b']}}))

        dirs = ConfigManager(str(path)).workspace_dirs()

        assert dirs[0] == Path('/data/a')
        assert dirs[1] == Path.home() / 'b'


class TestSet:
    """Test dot-notation writes."""

    def test_set_persists(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = ConfigManager(str(path))

        config.set('search.default_limit', 5)

        assert json.loads(path.read_text())['search']['default_limit'] == 5
        assert ConfigManager(str(path)).get('search.default_limit') == 5

    def test_set_creates_sections(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.json"))
        config.set('custom.deep.key', 'value')
        assert config.get('custom.deep.key') == 'value'

    def test_set_does_not_touch_class_defaults(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.json"))
        config.set('search.default_limit', 99)

        assert ConfigManager.DEFAULT_CONFIG['search']['default_limit'] == 10


def test_finds_project_config(tmp_path, monkeypatch):
    project_config = tmp_path / ".chattrail" / "config.json"
    project_config.parent.mkdir()
    project_config.write_text(json.dumps({'logging': {'level': 'DEBUG'}}))
    monkeypatch.chdir(tmp_path)

    config = ConfigManager()

    assert config.config_path == project_config
    assert config.get('logging.level') == 'DEBUG'
