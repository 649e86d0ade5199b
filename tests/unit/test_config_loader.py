from pathlib import Path

import pytest

from bundle_gate.core.config_loader import (
    DEFAULT_APP_DIR,
    DEFAULT_RENDERER_DIR,
    ConfigError,
    ConfigLoader,
    build_default_config,
)

VALID_CONFIG = """
project:
  name: demo
  root: "."
artifact:
  output_file: "dist/app.js"
  cache_file: "dist/.bundle.hash"
inputs:
  roots:
    - "package.json"
    - "src"
  required:
    - "src"
  exclude_dirs: [".git"]
build:
  rerun_hint: "make bundle"
  steps:
    - name: compile
      command: npx
      args: ["tsc", "-p", "tsconfig.json"]
    - command: npx
      args: ["rolldown"]
      cwd: "web"
logging:
  level: "DEBUG"
  format: "json"
"""


def _write_config(tmp_path, content=VALID_CONFIG):
    config_path = tmp_path / "bundle-gate.yaml"
    config_path.write_text(content, encoding="utf-8")
    return config_path


def test_config_loader_ok(tmp_path):
    cfg = ConfigLoader(config_path=_write_config(tmp_path)).load()

    root = tmp_path.resolve()
    assert cfg.project.name == "demo"
    assert cfg.project.root == root
    assert cfg.artifact.output_file == root / "dist" / "app.js"
    assert cfg.inputs.roots == [root / "package.json", root / "src"]
    assert cfg.inputs.required == [root / "src"]
    assert cfg.inputs.exclude_dirs == [".git"]
    assert cfg.inputs.exclude_hidden is False

    first, second = cfg.build.steps
    assert first.name == "compile"
    assert first.args == ["tsc", "-p", "tsconfig.json"]
    assert first.cwd is None
    assert second.name == "step-2"
    assert second.cwd == root / "web"

    assert cfg.build.rerun_hint == "make bundle"
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.format == "json"


def test_required_defaults_to_all_roots(tmp_path):
    content = VALID_CONFIG.replace('  required:\n    - "src"\n', "")
    cfg = ConfigLoader(config_path=_write_config(tmp_path, content)).load()

    assert cfg.inputs.required == cfg.inputs.roots


def test_project_root_override_wins(tmp_path):
    other = tmp_path / "elsewhere"
    other.mkdir()

    cfg = ConfigLoader(config_path=_write_config(tmp_path), project_root=other).load()

    assert cfg.project.root == other.resolve()
    assert cfg.artifact.cache_file == other.resolve() / "dist" / ".bundle.hash"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("BUNDLE_GATE_CACHE_FILE", "cache/fp.txt")
    monkeypatch.setenv("BUNDLE_GATE_OUTPUT_FILE", "/abs/out.js")

    cfg = ConfigLoader(config_path=_write_config(tmp_path)).load()

    assert cfg.artifact.cache_file == tmp_path.resolve() / "cache" / "fp.txt"
    assert cfg.artifact.output_file == Path("/abs/out.js")


def test_config_loader_missing_file(tmp_path):
    loader = ConfigLoader(config_path=tmp_path / "missing.yaml")

    with pytest.raises(ConfigError):
        loader.load()


def test_config_loader_schema_violation(tmp_path):
    content = VALID_CONFIG.replace("    - name: compile\n      command: npx\n", "    - name: compile\n")

    with pytest.raises(ConfigError) as excinfo:
        ConfigLoader(config_path=_write_config(tmp_path, content)).load()

    assert "command" in str(excinfo.value)


def test_config_loader_rejects_non_mapping(tmp_path):
    with pytest.raises(ConfigError):
        ConfigLoader(config_path=_write_config(tmp_path, "- just\n- a list\n")).load()


def test_config_loader_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError):
        ConfigLoader(config_path=_write_config(tmp_path, "inputs: [unclosed\n")).load()


def test_default_config_profile(tmp_path):
    cfg = build_default_config(tmp_path)

    root = tmp_path.resolve()
    assert cfg.inputs.roots[:2] == [root / "package.json", root / "pnpm-lock.yaml"]
    # Le fallback ne vérifie que les répertoires sources
    assert cfg.inputs.required == [root / DEFAULT_RENDERER_DIR, root / DEFAULT_APP_DIR]
    assert [s.name for s in cfg.build.steps] == ["tsc", "rolldown"]
    assert all(s.command == "npx" for s in cfg.build.steps)
