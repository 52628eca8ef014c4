from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from modzip.config import DEFAULT_EXCLUDES, load_settings


def test_defaults_anchor_outputs_to_repo_root(tmp_path: Path):
    settings = load_settings(repo_root=tmp_path)

    assert settings.paths.repo_root == tmp_path.resolve()
    assert settings.paths.build_dir == tmp_path.resolve() / "build"
    assert settings.paths.logs_root == tmp_path.resolve() / "build" / "logs"
    assert settings.packaging.excludes == list(DEFAULT_EXCLUDES)
    assert settings.packaging.symlinks == "follow"
    assert settings.install.on_existing == "overwrite"
    assert settings.install.mods_dir is None


def test_default_repo_root_is_working_directory():
    settings = load_settings()

    assert settings.paths.repo_root == Path.cwd().resolve()


def test_yaml_file_values_and_relative_repo_root(tmp_path: Path):
    project = tmp_path / "project"
    (project / "mods").mkdir(parents=True)
    config_file = project / "modzip.yaml"
    config_file.write_text(
        "\n".join(
            [
                "paths:",
                "  repo_root: mods",
                "  build_dir: dist",
                "packaging:",
                "  symlinks: reject",
                "  compression: stored",
                "install:",
                "  on_existing: skip",
                f"  mods_dir: {tmp_path / 'target'}",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    settings = load_settings(config_file=config_file)

    assert settings.paths.repo_root == (project / "mods").resolve()
    assert settings.paths.build_dir == (project / "mods" / "dist").resolve()
    assert settings.packaging.symlinks == "reject"
    assert settings.packaging.compression == "stored"
    assert settings.install.on_existing == "skip"
    assert settings.install.mods_dir == tmp_path / "target"


def test_settings_file_found_by_walking_up(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    project = tmp_path / "project"
    nested = project / "a" / "b"
    nested.mkdir(parents=True)
    (project / "modzip.yaml").write_text("packaging:\n  metadata_file: mod.json\n", encoding="utf-8")
    monkeypatch.chdir(nested)

    settings = load_settings()

    assert settings.packaging.metadata_file == "mod.json"
    assert settings.paths.repo_root == project.resolve()


def test_environment_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    config_file = tmp_path / "modzip.yaml"
    config_file.write_text("packaging:\n  symlinks: follow\n", encoding="utf-8")
    monkeypatch.setenv("MODZIP_PACKAGING__SYMLINKS", "reject")

    settings = load_settings(config_file=config_file)

    assert settings.packaging.symlinks == "reject"


def test_settings_file_env_var(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    config_file = tmp_path / "elsewhere.yaml"
    config_file.write_text("install:\n  on_existing: skip\n", encoding="utf-8")
    monkeypatch.setenv("MODZIP_SETTINGS_FILE", str(config_file))

    assert load_settings().install.on_existing == "skip"


def test_invalid_policy_is_rejected(tmp_path: Path):
    config_file = tmp_path / "modzip.yaml"
    config_file.write_text("packaging:\n  symlinks: sometimes\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_settings(config_file=config_file)
