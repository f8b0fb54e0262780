import json
from pathlib import Path

import pytest

from config.settings import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG,
    BuildConfig,
    ServerConfig,
    load_build_config,
)


def test_defaults():
    config = BuildConfig()
    assert config.output_dir == "mcp"
    assert config.server_name == "docs-mcp-server"
    assert config.server_version == "1.0.0"
    assert config.exclude_routes == ["/404*", "/search*"]
    assert config.indexers is None
    assert config.base_url == ""
    assert config.processing_options.min_content_length == 50
    assert config.processing_options.extraction.content_selectors == DEFAULT_CONFIG["content_selectors"]


def test_defaults_are_not_shared():
    first = BuildConfig()
    first.exclude_routes.append("/blog*")
    assert BuildConfig().exclude_routes == ["/404*", "/search*"]


def test_yaml_is_deep_merged(tmp_path: Path):
    path = tmp_path / "docs-mcp.yaml"
    path.write_text(
        "server:\n"
        "  name: acme-docs\n"
        "base_url: https://docs.acme.dev/\n"
        "indexers: fulltext\n",
        encoding="utf-8",
    )
    config = load_build_config(path)
    assert config.server_name == "acme-docs"
    assert config.server_version == "1.0.0"
    assert config.base_url == "https://docs.acme.dev"
    assert config.indexers == ["fulltext"]
    assert config.min_content_length == 50


def test_overrides_win(tmp_path: Path):
    path = tmp_path / "docs-mcp.yaml"
    path.write_text("output_dir: snapshot\nconcurrency: 4\n", encoding="utf-8")
    config = load_build_config(path, {"output_dir": "out"})
    assert config.output_dir == "out"
    assert config.concurrency == 4


def test_indexers_false_disables(tmp_path: Path):
    path = tmp_path / "docs-mcp.yaml"
    path.write_text("indexers: false\n", encoding="utf-8")
    assert load_build_config(path).indexers is False
    assert BuildConfig(indexers=True).indexers is None


def test_env_var_lookup(tmp_path: Path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("server:\n  version: 3.1.0\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert load_build_config().server_version == "3.1.0"


def test_default_file_in_working_directory(tmp_path: Path, monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    assert load_build_config().server_name == "docs-mcp-server"

    (tmp_path / "docs-mcp.yaml").write_text("server:\n  name: local\n", encoding="utf-8")
    assert load_build_config().server_name == "local"


def test_missing_explicit_file(tmp_path: Path):
    with pytest.raises(ValueError, match="Config file not found"):
        load_build_config(tmp_path / "missing.yaml")


def test_invalid_yaml(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("server: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid YAML"):
        load_build_config(path)


def test_non_mapping_yaml(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- one\n- two\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_build_config(path)


@pytest.mark.parametrize("kwargs", [
    {"output_dir": ""},
    {"content_selectors": []},
    {"min_content_length": -1},
    {"concurrency": 0},
    {"server_name": ""},
    {"indexers": 5},
])
def test_validation(kwargs):
    with pytest.raises(ValueError):
        BuildConfig(**kwargs)


def test_server_config_from_output_dir(tmp_path: Path):
    (tmp_path / "manifest.json").write_text(json.dumps({
        "name": "acme-docs",
        "version": "2.4.0",
        "baseUrl": "https://docs.acme.dev",
        "searchProvider": "fulltext",
    }), encoding="utf-8")

    config = ServerConfig.from_output_dir(tmp_path)
    assert config.name == "acme-docs"
    assert config.version == "2.4.0"
    assert config.base_url == "https://docs.acme.dev"
    assert config.search == "fulltext"
    assert config.docs_path == tmp_path / "docs.json"
    assert config.index_path == tmp_path / "search-index.json"
    assert config.init_data.has_paths
    assert not config.init_data.has_data


def test_server_config_overrides_manifest(tmp_path: Path):
    (tmp_path / "manifest.json").write_text(json.dumps({"name": "acme-docs"}), encoding="utf-8")
    config = ServerConfig.from_output_dir(tmp_path, name="override", base_url="https://x.dev/")
    assert config.name == "override"
    assert config.base_url == "https://x.dev"


def test_server_config_without_manifest(tmp_path: Path):
    config = ServerConfig.from_output_dir(tmp_path)
    assert config.name == "docs-mcp-server"
    assert config.base_url == ""
