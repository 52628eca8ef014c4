from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from conftest import write_mod
from modzip.cli import app

runner = CliRunner()


def _install_args(repo: Path, mods_dir: Path, *extra: str) -> list[str]:
    return ["install", *extra, "--repo-root", str(repo), "--mods-dir", str(mods_dir)]


def test_install_reports_one_line_per_mod(repo: Path, mods_dir: Path):
    result = runner.invoke(app, _install_args(repo, mods_dir))

    assert result.exit_code == 0, result.output
    assert f"installed: planets_1.2.0 -> {mods_dir.resolve() / 'planets_1.2.0.zip'}" in result.output
    assert "mods_failed: 0" in result.output
    assert (repo / "build" / "planets_1.2.0.zip").exists()
    assert (repo / "build" / "logs" / "modzip.log").exists()


def test_install_with_malformed_mod_exits_nonzero(repo: Path, mods_dir: Path):
    write_mod(repo, "broken", info="{oops")

    result = runner.invoke(app, _install_args(repo, mods_dir))

    assert result.exit_code == 1
    assert "failed: broken (at discovered)" in result.output
    assert "installed: planets_1.2.0" in result.output


def test_install_unknown_name_is_run_level_error(repo: Path, mods_dir: Path):
    result = runner.invoke(app, _install_args(repo, mods_dir, "moons"))

    assert result.exit_code == 2
    assert "No mod matching 'moons'" in result.output
    assert not (repo / "build" / "moons_1.0.0.zip").exists()


def test_install_missing_repo_root_is_run_level_error(tmp_path: Path, mods_dir: Path):
    missing = tmp_path / "missing"

    result = runner.invoke(app, _install_args(missing, mods_dir))

    assert result.exit_code == 2
    assert "Not a repository directory" in result.output
    assert not missing.exists()


def test_install_explicit_mod_path(tmp_path: Path, repo: Path, mods_dir: Path):
    outside = write_mod(tmp_path, "outside", version="2.0.0")

    result = runner.invoke(app, _install_args(repo, mods_dir, str(outside)))

    assert result.exit_code == 0, result.output
    assert (mods_dir / "outside_2.0.0.zip").exists()


def test_package_does_not_install(repo: Path, mods_dir: Path):
    result = runner.invoke(app, ["package", "--repo-root", str(repo), "--out-dir", "dist"])

    assert result.exit_code == 0, result.output
    assert "packaged: planets_1.2.0" in result.output
    assert (repo / "dist" / "planets_1.2.0.zip").exists()
    assert not mods_dir.exists()


def test_invalid_symlink_policy_is_usage_error(repo: Path, mods_dir: Path):
    result = runner.invoke(app, _install_args(repo, mods_dir, "--symlinks", "sometimes"))

    assert result.exit_code == 2
    assert not (repo / "build" / "planets_1.2.0.zip").exists()


def test_list_prints_tokens_and_malformed(repo: Path):
    write_mod(repo, "broken", info={"name": "broken"})

    result = runner.invoke(app, ["list", "--repo-root", str(repo)])

    assert result.exit_code == 1
    assert "planets_1.2.0" in result.output
    assert "malformed" in result.output


def test_mods_dir_prints_override(tmp_path: Path):
    config_file = tmp_path / "modzip.yaml"
    config_file.write_text(f"install:\n  mods_dir: {tmp_path / 'mods'}\n", encoding="utf-8")

    result = runner.invoke(app, ["mods-dir", "--config-file", str(config_file)])

    assert result.exit_code == 0
    assert result.output.strip() == str(tmp_path / "mods")


def test_show_config_renders_yaml(repo: Path):
    result = runner.invoke(app, ["show-config", "--repo-root", str(repo)])

    assert result.exit_code == 0
    assert "symlinks: follow" in result.output
    assert "on_existing: overwrite" in result.output


def test_build_path_blocked_by_file_is_run_level_error(repo: Path, mods_dir: Path):
    (repo / "build").write_text("blocker", encoding="utf-8")

    result = runner.invoke(app, _install_args(repo, mods_dir))

    assert result.exit_code == 2, result.output
    assert "error: I/O failure" in result.output
    assert not mods_dir.exists()


def test_bare_mod_name_ignores_matching_folder_in_working_directory(repo: Path, mods_dir: Path):
    write_mod(Path.cwd(), "planets", name="decoy", version="9.9.9")

    result = runner.invoke(app, _install_args(repo, mods_dir, "planets"))

    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in mods_dir.iterdir()) == ["planets_1.2.0.zip"]


def test_relative_mod_path_starts_at_repo_root(repo: Path, mods_dir: Path):
    result = runner.invoke(app, _install_args(repo, mods_dir, "planets/"))

    assert result.exit_code == 0, result.output
    assert (mods_dir / "planets_1.2.0.zip").exists()


def test_mod_path_without_metadata_is_usage_error(repo: Path, mods_dir: Path):
    result = runner.invoke(app, _install_args(repo, mods_dir, "foo/"))

    assert result.exit_code == 2
    assert not (repo / "build" / "planets_1.2.0.zip").exists()
