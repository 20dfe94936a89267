#!/usr/bin/env python3
"""
Tests for ConfigManager and TypedConfigLoader.
"""
import pytest
import yaml

from factor_worker.config_manager import ConfigManager
from factor_worker.errors import ConfigurationError
from factor_worker.typed_config import AppConfig, TypedConfigLoader


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestConfigManager:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load_config(str(tmp_path / "worker.yaml"))

    def test_local_override_is_deep_merged(self, tmp_path):
        base = write_yaml(tmp_path / "worker.yaml", {
            "registry": {"url": "http://registry.test", "retry_count": 10},
            "tiers": [{"engine": "yafu", "attempts": 3}],
        })
        write_yaml(tmp_path / "worker.local.yaml", {
            "registry": {"retry_count": 2},
            "tiers": [{"engine": "msieve"}],
        })

        config = ConfigManager().load_config(base)

        assert config["registry"] == {"url": "http://registry.test", "retry_count": 2}
        # Lists are replaced, not merged
        assert config["tiers"] == [{"engine": "msieve"}]

    def test_broken_local_override_is_ignored(self, tmp_path):
        base = write_yaml(tmp_path / "worker.yaml", {"registry": {"timeout": 5}})
        (tmp_path / "worker.local.yaml").write_text("registry: [unclosed\n")

        assert ConfigManager().load_config(base) == {"registry": {"timeout": 5}}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "worker.yaml"
        path.write_text("")
        assert ConfigManager().load_config(str(path)) == {}

    def test_deep_merge_leaves_inputs_unchanged(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        override = {"a": {"b": 99}, "e": 4}

        result = ConfigManager().deep_merge(base, override)

        assert result == {"a": {"b": 99, "c": 2}, "d": 3, "e": 4}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}


class TestTypedConfigLoader:
    def test_defaults(self):
        config = TypedConfigLoader().parse({})

        assert isinstance(config, AppConfig)
        assert config.registry.retry_count == 10
        assert config.registry.retry_delay == 10.0
        assert config.registry.max_concurrent_submissions == 2
        assert config.locks.directory == "/tmp/factordb-composites"
        assert [(t.engine, t.threads, t.attempts) for t in config.tiers] == [
            ("yafu", 1, 3), ("msieve", 4, 1)
        ]
        config.validate()

    def test_shipped_config_is_valid(self):
        from pathlib import Path

        config = TypedConfigLoader().load(str(Path(__file__).parent.parent / "worker.yaml"))

        assert config.engines["yafu"].stdin == "factor({number})"
        assert config.engines["msieve"].grammar == "colon"

    def test_parses_engines_and_tiers(self, tmp_path):
        path = write_yaml(tmp_path / "worker.yaml", {
            "engines": {
                "ecm": {"path": "/usr/bin/ecm", "args": ["-c", 5], "grammar": "colon",
                        "factor_label": "Found factor"},
            },
            "tiers": [{"engine": "ecm", "threads": 2, "attempts": 4, "timeout": 30}],
            "locks": {"directory": str(tmp_path / "locks")},
        })

        config = TypedConfigLoader().load(path)

        engine = config.engines["ecm"]
        assert engine.args == ["-c", "5"]
        assert engine.factor_label == "Found factor"
        tier = config.tiers[0]
        assert (tier.engine, tier.threads, tier.attempts, tier.timeout) == ("ecm", 2, 4, 30.0)
        assert config.locks.directory == str(tmp_path / "locks")

    def test_unknown_tier_engine(self, tmp_path):
        path = write_yaml(tmp_path / "worker.yaml", {"tiers": [{"engine": "gmp-ecm"}]})
        with pytest.raises(ConfigurationError, match="unknown engine"):
            TypedConfigLoader().load(path)

    def test_unknown_grammar(self, tmp_path):
        path = write_yaml(tmp_path / "worker.yaml", {
            "engines": {"yafu": {"path": "yafu", "grammar": "xml"}},
            "tiers": [{"engine": "yafu"}],
        })
        with pytest.raises(ConfigurationError):
            TypedConfigLoader().load(path)

    @pytest.mark.parametrize("tier", [
        {"engine": "yafu", "attempts": 0},
        {"engine": "yafu", "threads": 0},
        {"threads": 2},
    ])
    def test_bad_tiers(self, tmp_path, tier):
        path = write_yaml(tmp_path / "worker.yaml", {"tiers": [tier]})
        with pytest.raises(ConfigurationError):
            TypedConfigLoader().load(path)

    def test_negative_retry_count(self, tmp_path):
        path = write_yaml(tmp_path / "worker.yaml", {"registry": {"retry_count": -1}})
        with pytest.raises(ConfigurationError, match="retry_count"):
            TypedConfigLoader().load(path)
