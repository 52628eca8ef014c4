"""Copy built archives into the game's mods directory."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from modzip.config import ExistingFilePolicy
from modzip.errors import InstallPathUnavailable, IoFailure
from modzip.utils.paths import atomic_temp_path

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InstallResult:
    """Outcome of placing one archive into the mods directory."""

    install_path: Path
    replaced_existing: bool
    skipped_existing: bool


def ensure_mods_dir(mods_dir: Path) -> Path:
    """Create the mods directory with parents, raising InstallPathUnavailable on failure."""

    try:
        mods_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InstallPathUnavailable(mods_dir, f"cannot create directory ({exc})") from exc
    if not mods_dir.is_dir():
        raise InstallPathUnavailable(mods_dir, "path exists but is not a directory")
    return mods_dir


def install_archive(
    archive_path: Path,
    mods_dir: Path,
    *,
    on_existing: ExistingFilePolicy = "overwrite",
    logger: logging.Logger | None = None,
) -> InstallResult:
    """Copy ``archive_path`` into ``mods_dir`` under the same file name.

    With ``on_existing="overwrite"`` a file of the exact same name is replaced;
    with ``"skip"`` it is left untouched. Archives for other versions of the
    same mod are never removed. The copy goes through a temp file and
    ``os.replace`` so the target is either the old file or the complete new one.
    """

    effective_logger = logger or LOGGER
    ensure_mods_dir(mods_dir)
    install_path = mods_dir / archive_path.name
    existed = install_path.exists()

    if existed and on_existing == "skip":
        effective_logger.info("install.skip_existing path=%s", install_path)
        return InstallResult(install_path=install_path, replaced_existing=False, skipped_existing=True)

    temp_path = atomic_temp_path(install_path)
    try:
        shutil.copyfile(archive_path, temp_path)
        os.replace(temp_path, install_path)
    except OSError as exc:
        raise IoFailure(install_path, f"cannot copy {archive_path} ({exc})") from exc
    finally:
        if temp_path.exists():
            temp_path.unlink()

    effective_logger.info("install.copied source=%s target=%s replaced=%s", archive_path, install_path, existed)
    return InstallResult(install_path=install_path, replaced_existing=existed, skipped_existing=False)
