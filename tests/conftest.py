from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from modzip.config import AppSettings, load_settings


def write_mod(
    repo_root: Path,
    dirname: str,
    *,
    name: str | None = None,
    version: str = "1.0.0",
    files: dict[str, str | bytes] | None = None,
    info: object | None = None,
) -> Path:
    """Create a mod directory with an info.json and extra files."""

    mod_dir = repo_root / dirname
    mod_dir.mkdir(parents=True, exist_ok=True)
    payload = info if info is not None else {"name": name or dirname, "version": version}
    text = payload if isinstance(payload, str) else json.dumps(payload)
    (mod_dir / "info.json").write_text(text, encoding="utf-8")
    for rel_path, content in (files or {}).items():
        target = mod_dir / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return mod_dir


def make_settings(repo_root: Path, mods_dir: Path | None = None, **install: object) -> AppSettings:
    settings = load_settings(repo_root=repo_root)
    updates: dict[str, object] = dict(install)
    if mods_dir is not None:
        updates["mods_dir"] = mods_dir
    return settings.model_copy(update={"install": settings.install.model_copy(update=updates)})


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run every test from an empty cwd with no MODZIP_* overrides and a private home."""

    for key in list(os.environ):
        if key.startswith("MODZIP_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    root_logger = logging.getLogger()
    handlers_before = list(root_logger.handlers)
    level_before = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if handler not in handlers_before:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers_before:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level_before)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Repository with one valid mod (planets) and one plain directory (foo)."""

    root = tmp_path / "repo"
    root.mkdir()
    write_mod(
        root,
        "planets",
        name="planets",
        version="1.2.0",
        files={
            "control.lua": "script.on_init(function() end)\n",
            "data.lua": "require('prototypes.planet')\n",
            "prototypes/planet.lua": "return {}\n",
            "graphics/icon.png": b"\x89PNG\r\n\x1a\n\x00\x01binary",
        },
    )
    (root / "foo").mkdir()
    (root / "foo" / "notes.txt").write_text("not a mod\n", encoding="utf-8")
    return root


@pytest.fixture
def mods_dir(tmp_path: Path) -> Path:
    return tmp_path / "factorio" / "mods"
