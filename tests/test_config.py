"""Tests for analyzer configuration."""

import pytest
import yaml

from joinscope.config import (
    CONFIG_TEMPLATE,
    AnalyzerConfig,
    ConfigError,
    load_config,
    merge_with_cli,
    write_template,
)
from joinscope.models import LoadStrategy


class TestAnalyzerConfig:
    """Tests for AnalyzerConfig."""

    def test_defaults(self):
        config = AnalyzerConfig()

        assert config.adapter == "postgres"
        assert config.adapter_version is None
        assert config.join_depth == 3
        assert config.join_strategy == LoadStrategy.OPTIMIZED
        assert config.detect_cycles is True
        assert config.include_junction_edges is False

    def test_normalization(self):
        config = AnalyzerConfig(adapter="MySQL", adapter_version=8.0, join_strategy="lazy")

        assert config.adapter == "mysql"
        assert config.adapter_version == "8.0"
        assert config.join_strategy == LoadStrategy.LAZY

    @pytest.mark.parametrize("options", [
        {"join_depth": 0},
        {"join_depth": True},
        {"join_strategy": "sometimes"},
        {"adapter": ""},
    ])
    def test_invalid_values(self, options):
        with pytest.raises(ConfigError):
            AnalyzerConfig(**options)

    def test_from_dict_with_adapter_versions(self):
        config = AnalyzerConfig.from_dict({
            "defaults": {"adapter": "sqlite", "join_depth": 4},
            "adapters": {"sqlite": {"version": "3.45"}, "mysql": {"version": "8.0"}},
        })

        assert config.adapter == "sqlite"
        assert config.adapter_version == "3.45"
        assert config.join_depth == 4

    def test_from_dict_flat(self):
        config = AnalyzerConfig.from_dict({"adapter": "mysql", "adapter_version": "5.7"})

        assert config.adapter_version == "5.7"

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(ConfigError):
            AnalyzerConfig.from_dict(["postgres"])


class TestLoadConfig:
    """Tests for loading configuration files."""

    def test_load_explicit_file(self, tmp_path):
        path = tmp_path / "joinscope.yml"
        path.write_text(yaml.dump({"defaults": {"adapter": "mysql"}, "adapters": {"mysql": {"version": "8.0"}}}))

        config = load_config(path)

        assert config.adapter == "mysql"
        assert config.adapter_version == "8.0"

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert load_config() == AnalyzerConfig()

    def test_default_path_discovery(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / ".joinscope.yml").write_text("defaults:\n  join_depth: 5\n")

        assert load_config().join_depth == 5

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("defaults: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_template_loads(self):
        config = AnalyzerConfig.from_dict(yaml.safe_load(CONFIG_TEMPLATE))

        assert config.adapter == "postgres"
        assert config.adapter_version == "14.0"


class TestMergeAndTemplate:
    """Tests for CLI merging and template writing."""

    def test_merge_with_cli(self):
        base = AnalyzerConfig(adapter="mysql", join_depth=4)
        merged = merge_with_cli(base, adapter=None, join_depth=2, join_strategy="eager")

        assert merged.adapter == "mysql"
        assert merged.join_depth == 2
        assert merged.join_strategy == LoadStrategy.EAGER
        assert base.join_depth == 4

    def test_merge_without_overrides(self):
        base = AnalyzerConfig()

        assert merge_with_cli(base, adapter=None) is base

    def test_write_template(self, tmp_path):
        path = write_template(tmp_path / "config" / "joinscope.yml")

        assert path.read_text() == CONFIG_TEMPLATE
        with pytest.raises(ConfigError, match="already exists"):
            write_template(path)
        write_template(path, overwrite=True)
