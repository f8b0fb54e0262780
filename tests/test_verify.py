import asyncio
import json
from pathlib import Path

import pytest

from pipelines.build import build_snapshot
from server.verify import check_server, main, verify_build


@pytest.fixture
def built_site(site_dir: Path) -> Path:
    asyncio.run(build_snapshot(site_dir))
    return site_dir


def test_verify_built_snapshot(built_site: Path):
    result = verify_build(built_site / "mcp")
    assert result.success
    assert result.errors == []
    assert result.docs_found == 3

    ok, message = check_server(built_site / "mcp")
    assert ok
    assert message == "Server initialized with 3 documents"


def test_main_passes(built_site: Path, capsys):
    assert main([str(built_site)]) == 0
    out = capsys.readouterr().out
    assert "found 3 documents" in out
    assert "Verification passed" in out


def test_missing_directory(tmp_path: Path, capsys):
    result = verify_build(tmp_path / "mcp")
    assert not result.success
    assert "MCP directory not found" in result.errors[0]

    assert main([str(tmp_path)]) == 1
    assert "Verification failed" in capsys.readouterr().out


def test_missing_file(built_site: Path):
    (built_site / "mcp" / "search-index.json").unlink()
    result = verify_build(built_site / "mcp")
    assert not result.success
    assert any("search-index.json" in e for e in result.errors)


def test_malformed_docs(built_site: Path):
    (built_site / "mcp" / "docs.json").write_text("[1, 2]", encoding="utf-8")
    result = verify_build(built_site / "mcp")
    assert not result.success
    assert "docs.json is not a valid object" in result.errors


def test_warnings_do_not_fail(built_site: Path):
    manifest_path = built_site / "mcp" / "manifest.json"
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    del manifest["version"]
    manifest_path.write_text(json.dumps(manifest), encoding="utf-8")

    result = verify_build(built_site / "mcp")
    assert result.success
    assert "manifest.json is missing server version" in result.warnings


def test_corrupt_index_fails_server_check(built_site: Path):
    (built_site / "mcp" / "search-index.json").write_text('{"cfg": "{}"}', encoding="utf-8")
    ok, message = check_server(built_site / "mcp")
    assert not ok
    assert message.startswith("Server failed to initialize")
