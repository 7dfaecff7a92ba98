"""
Unit tests for configuration loading.
"""

import pytest # pyright: ignore[reportMissingImports]
import yaml
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config_loader import DEFAULT_CONFIG, get_nested_config, load_config, merge_config

REPO_CONFIG = Path(__file__).parent.parent / 'configs' / 'thresholds.yaml'


class TestLoadConfig:
    """Test YAML loading and default merging."""

    def test_defaults_without_path(self):
        config = load_config()

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_repository_config_matches_defaults(self):
        assert load_config(REPO_CONFIG) == DEFAULT_CONFIG

    def test_partial_file_merged_over_defaults(self, tmp_path):
        path = tmp_path / 'custom.yaml'
        path.write_text("timeline:\n  throttle_interval_ms: 500\n")

        config = load_config(path)

        assert config['timeline']['throttle_interval_ms'] == 500
        assert config['identity']['match_threshold'] == 0.6

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text("")

        assert load_config(path) == DEFAULT_CONFIG

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'missing.yaml')

    def test_malformed_file(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("pose: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_config(path)


class TestNestedConfig:
    """Test dot-path lookup and merging."""

    def test_nested_lookup(self):
        assert get_nested_config(DEFAULT_CONFIG, 'stress.vigilance.confidence') == 0.7

    def test_missing_path_returns_default(self):
        assert get_nested_config(DEFAULT_CONFIG, 'stress.unknown.key', default=3) == 3

    def test_none_config(self):
        assert get_nested_config(None, 'pose.visibility_threshold', 0.5) == 0.5

    def test_merge_does_not_mutate_base(self):
        base = {'a': {'b': 1, 'c': 2}}

        merged = merge_config(base, {'a': {'b': 5}})

        assert merged == {'a': {'b': 5, 'c': 2}}
        assert base == {'a': {'b': 1, 'c': 2}}


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
