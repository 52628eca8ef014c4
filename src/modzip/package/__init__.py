"""Archive building, platform resolution, and install helpers."""

from modzip.package.archive import ArchiveOptions, ArchiveResult, build_archive, load_default_thumbnail
from modzip.package.installer import InstallResult, ensure_mods_dir, install_archive
from modzip.package.pipeline import (
    BuildArtifact,
    InstallRunOptions,
    InstallRunResult,
    ModOutcome,
    ModState,
    install_package,
    package_and_install,
    package_mod,
    run_install,
)
from modzip.package.platform import current_os_name, default_mods_dir, resolve_mods_dir

__all__ = [
    "ArchiveOptions",
    "ArchiveResult",
    "build_archive",
    "load_default_thumbnail",
    "InstallResult",
    "ensure_mods_dir",
    "install_archive",
    "BuildArtifact",
    "InstallRunOptions",
    "InstallRunResult",
    "ModOutcome",
    "ModState",
    "install_package",
    "package_and_install",
    "package_mod",
    "run_install",
    "current_os_name",
    "default_mods_dir",
    "resolve_mods_dir",
]
