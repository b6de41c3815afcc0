"""
Tests for configuration loading: YAML + local overrides, typed parsing, validation.
"""
from pathlib import Path

import pytest
import yaml

from mersenne.config_manager import ConfigManager
from mersenne.errors import ConfigurationError
from mersenne.typed_config import AppConfig, TypedConfigLoader

PROJECT_CONFIG = Path(__file__).parent.parent / "mersenne.yaml"


def _write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


class TestConfigManager:
    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load_config(str(tmp_path / "absent.yaml"))

    def test_loads_base_config(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {"search": {"workers": 4}})
        assert ConfigManager().load_config(str(config_file)) == {"search": {"workers": 4}}

    def test_empty_file_gives_empty_dict(self, tmp_path):
        config_file = tmp_path / "mersenne.yaml"
        config_file.write_text("")
        assert ConfigManager().load_config(str(config_file)) == {}

    def test_local_override_deep_merges(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {
            "search": {"workers": 8, "start": 1},
            "client": {"username": "base"},
        })
        _write_yaml(tmp_path / "mersenne.local.yaml", {
            "search": {"workers": 2},
            "api": {"enabled": True},
        })

        config = ConfigManager().load_config(str(config_file))

        assert config == {
            "search": {"workers": 2, "start": 1},
            "client": {"username": "base"},
            "api": {"enabled": True},
        }

    def test_broken_local_override_is_ignored(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {"search": {"workers": 8}})
        (tmp_path / "mersenne.local.yaml").write_text("search: [unclosed")
        assert ConfigManager().load_config(str(config_file)) == {"search": {"workers": 8}}

    def test_unparsable_base_file_raises_configuration_error(self, tmp_path):
        config_file = tmp_path / "mersenne.yaml"
        config_file.write_text("search: [unclosed")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            ConfigManager().load_config(str(config_file))

    def test_non_mapping_base_file_raises_configuration_error(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", [1, 2, 3])
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigManager().load_config(str(config_file))

    def test_non_mapping_local_override_is_ignored(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {"search": {"workers": 8}})
        _write_yaml(tmp_path / "mersenne.local.yaml", ["not", "a", "mapping"])
        assert ConfigManager().load_config(str(config_file)) == {"search": {"workers": 8}}

    def test_deep_merge_does_not_mutate_inputs(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        override = {"a": {"b": 99}, "e": 4}
        result = ConfigManager().deep_merge(base, override)
        assert result == {"a": {"b": 99, "c": 2}, "d": 3, "e": 4}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}


class TestTypedConfig:
    def test_defaults(self):
        config = AppConfig()
        config.validate()
        assert config.search.start == 1
        assert config.search.end is None
        assert config.search.workers == 8
        assert config.search.queue_capacity == 100
        assert config.search.probable_prime_rounds == 25
        assert config.search.word_max == 2 ** 64 - 1
        assert config.search.backend == "python"
        assert config.api.enabled is False
        assert config.client.client_id == "default_user-default_machine"

    def test_shipped_config_matches_defaults(self):
        config = TypedConfigLoader().load(str(PROJECT_CONFIG))
        defaults = AppConfig()
        assert config.search == defaults.search
        assert config.results == defaults.results
        assert config.api == defaults.api

    def test_load_parses_sections(self, tmp_path):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {
            "search": {"start": 1000, "end": 2000, "workers": 3, "word_bits": 32, "backend": "gmpy2"},
            "logging": {"level": "DEBUG", "file": None},
            "api": {"enabled": True, "endpoint": "https://example.org/api", "retry_attempts": 5},
            "client": {"username": "alice", "cpu_name": "box"},
        })

        config = TypedConfigLoader().load(str(config_file))

        assert config.search.start == 1000
        assert config.search.end == 2000
        assert config.search.workers == 3
        assert config.search.word_max == 2 ** 32 - 1
        assert config.search.backend == "gmpy2"
        assert config.logging.level == "DEBUG"
        assert config.logging.file is None
        assert config.api.enabled is True
        assert config.api.retry_attempts == 5
        assert config.client.client_id == "alice-box"

    def test_null_sections_use_defaults(self):
        config = TypedConfigLoader().parse({"search": None, "api": None})
        assert config.search.workers == 8
        assert config.api.enabled is False

    def test_malformed_value(self):
        with pytest.raises(ConfigurationError, match="Malformed"):
            TypedConfigLoader().parse({"search": {"workers": "many"}})

    @pytest.mark.parametrize("section, message", [
        ({"workers": 0}, "workers"),
        ({"queue_capacity": 0}, "queue_capacity"),
        ({"probable_prime_rounds": 0}, "probable_prime_rounds"),
        ({"word_bits": 4}, "word_bits"),
        ({"start": 50, "end": 10}, "search.end"),
        ({"backend": "bignum"}, "backend"),
    ])
    def test_validation(self, tmp_path, section, message):
        config_file = _write_yaml(tmp_path / "mersenne.yaml", {"search": section})
        with pytest.raises(ConfigurationError, match=message):
            TypedConfigLoader().load(str(config_file))
