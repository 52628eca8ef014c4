"""Configuration models and loading logic."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_SETTINGS_FILE = Path("modzip.yaml")
SETTINGS_FILE_ENV = "MODZIP_SETTINGS_FILE"
DEFAULT_EXCLUDES = ("build", ".git", ".github", ".idea", ".vscode")

SymlinkPolicy = Literal["follow", "reject"]
ExistingFilePolicy = Literal["overwrite", "skip"]
CompressionName = Literal["deflated", "stored", "bzip2", "lzma"]


class ProjectConfig(BaseModel):
    """Project metadata settings."""

    name: str = "modzip"
    game: str = "factorio"


class PathsConfig(BaseModel):
    """Filesystem locations used by discovery, packaging, and logging."""

    repo_root: Path = Path(".")
    build_dir: Path = Path("build")
    logs_root: Path = Path("build/logs")
    summaries_root: Path = Path("build/run_summaries")

    def resolved(self, project_root: Path) -> "PathsConfig":
        """Return a copy with the repo root resolved and output paths anchored to it."""

        repo_root = self.repo_root if self.repo_root.is_absolute() else (project_root / self.repo_root)
        repo_root = repo_root.resolve()
        updates: dict[str, Path] = {"repo_root": repo_root}
        for field_name in ("build_dir", "logs_root", "summaries_root"):
            value = getattr(self, field_name)
            updates[field_name] = value if value.is_absolute() else (repo_root / value).resolve()
        return self.model_copy(update=updates)


class PackagingConfig(BaseModel):
    """Archive construction settings."""

    metadata_file: str = "info.json"
    excludes: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    symlinks: SymlinkPolicy = "follow"
    compression: CompressionName = "deflated"
    compression_level: int | None = Field(default=None, ge=0, le=9)
    default_thumbnail: Path | None = None


class InstallConfig(BaseModel):
    """Install target settings."""

    mods_dir: Path | None = None
    on_existing: ExistingFilePolicy = "overwrite"


class AppSettings(BaseSettings):
    """Top-level application settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    packaging: PackagingConfig = Field(default_factory=PackagingConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)

    model_config = SettingsConfigDict(
        env_prefix="MODZIP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use YAML defaults while allowing env vars to override values."""

        yaml_file = resolve_settings_file(cls._yaml_file_override)
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    def as_dict(self) -> dict[str, object]:
        """Return settings as a standard nested dictionary."""

        return self.model_dump(mode="json")


def find_project_root(start: Path | None = None) -> Path:
    """Locate the project root by traversing upward for a settings file."""

    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if (candidate / DEFAULT_SETTINGS_FILE).exists():
            return candidate
    return current


def resolve_settings_file(override: Path | None = None) -> Path:
    """Resolve settings file from explicit override, env var, or default."""

    chosen = override
    if chosen is None:
        env_value = os.getenv(SETTINGS_FILE_ENV)
        if env_value:
            chosen = Path(env_value)
    if chosen is None:
        chosen = DEFAULT_SETTINGS_FILE

    if not chosen.is_absolute():
        chosen = (find_project_root() / chosen).resolve()
    return chosen


def load_settings(config_file: Path | None = None, repo_root: Path | None = None) -> AppSettings:
    """Load settings with YAML defaults and environment variable overrides.

    Relative ``paths.repo_root`` values resolve against the directory holding
    the settings file; an explicit ``repo_root`` argument resolves against the
    current working directory and wins over both.
    """

    settings_file = resolve_settings_file(config_file)
    project_root = settings_file.parent.resolve()
    AppSettings._yaml_file_override = settings_file
    try:
        settings = AppSettings()
    finally:
        AppSettings._yaml_file_override = None

    paths = settings.paths
    if repo_root is not None:
        paths = paths.model_copy(update={"repo_root": repo_root.resolve()})
    resolved_paths = paths.resolved(project_root=project_root)
    return settings.model_copy(update={"paths": resolved_paths})
