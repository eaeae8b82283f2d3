"""
Tests for Config
"""

import json

import pytest

from codeflow.utils.config import Config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "CODEFLOW_SOURCE_GLOBS", "CODEFLOW_PROJECT_ROOT", "CODEFLOW_OUTPUT_FILE", "CODEFLOW_EXPORT_ONLY",
        "CODEFLOW_EDGE_KEY_INCLUDES_TYPE", "CODEFLOW_RECURSION_LIMIT", "CODEFLOW_MAX_FILE_SIZE_MB",
        "LOG_LEVEL", "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = Config()

    assert config.get_source_globs() == ["**/*.ts"]
    assert config.export_only is True
    assert config.edge_key_includes_type is False
    assert config.log_level == "INFO"


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CODEFLOW_SOURCE_GLOBS", "src/**/*.ts, lib/*.js,")
    monkeypatch.setenv("CODEFLOW_EXPORT_ONLY", "false")
    monkeypatch.setenv("CODEFLOW_EDGE_KEY_INCLUDES_TYPE", "yes")
    monkeypatch.setenv("CODEFLOW_RECURSION_LIMIT", "2000")
    monkeypatch.setenv("CODEFLOW_PROJECT_ROOT", str(tmp_path))

    config = Config()

    assert config.get_source_globs() == ["src/**/*.ts", "lib/*.js"]
    assert config.export_only is False
    assert config.edge_key_includes_type is True
    assert config.recursion_limit == 2000
    assert config.get_project_root() == tmp_path.resolve()


def test_invalid_integer_env_keeps_default(monkeypatch):
    monkeypatch.setenv("CODEFLOW_RECURSION_LIMIT", "lots")

    assert Config().recursion_limit == 10000


def test_config_file_overrides_and_ignores_unknown_keys(tmp_path):
    config_file = tmp_path / "codeflow.json"
    config_file.write_text(json.dumps({"output_file": "graph.json", "unknown": 1}), encoding="utf-8")

    config = Config(str(config_file))

    assert config.get_output_path().name == "graph.json"
    assert "unknown" not in config.to_dict()


def test_missing_config_file_keeps_defaults(tmp_path):
    config = Config(str(tmp_path / "missing.json"))

    assert config.output_file == "./codeflow.json"


def test_save_and_reload(tmp_path):
    config = Config()
    config.set("export_only", False)
    config.save_to_file(str(tmp_path / "saved" / "config.json"))

    assert Config(str(tmp_path / "saved" / "config.json")).export_only is False


def test_unknown_attribute_raises():
    with pytest.raises(AttributeError):
        Config().no_such_option


def test_string_globs_become_a_list():
    config = Config()
    config.set("source_globs", "*.ts")

    assert config.get_source_globs() == ["*.ts"]


def test_is_supported_file(tmp_path):
    config = Config()
    for name in ("app.ts", "types.d.ts", "readme.md"):
        (tmp_path / name).write_text("", encoding="utf-8")

    assert config.is_supported_file(tmp_path / "app.ts")
    assert not config.is_supported_file(tmp_path / "types.d.ts")
    assert not config.is_supported_file(tmp_path / "readme.md")
    assert not config.is_supported_file(tmp_path / "missing.ts")


def test_oversized_file_is_skipped(tmp_path):
    config = Config()
    config.set("max_file_size_mb", 0)
    (tmp_path / "big.ts").write_text("export const a = 1;\n", encoding="utf-8")

    assert not config.is_supported_file(tmp_path / "big.ts")
