"""Discover, package, and install mods for a whole repository."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from modzip.config import AppSettings, ExistingFilePolicy
from modzip.discover.descriptor import ModDescriptor
from modzip.discover.loader import DiscoveryResult, discover_mod_at, discover_mods
from modzip.errors import InstallPathUnavailable, IoFailure, ModzipError, NoMatchingMod
from modzip.package.archive import ArchiveOptions, ArchiveResult, build_archive, load_default_thumbnail
from modzip.package.installer import install_archive
from modzip.package.platform import default_mods_dir
from modzip.utils.paths import probe_writable, write_json_atomically
from modzip.utils.time_utils import now_utc, run_stamp

LOGGER = logging.getLogger(__name__)


class ModState(str, Enum):
    """Per-mod lifecycle; ``installed`` and ``failed`` are terminal."""

    DISCOVERED = "discovered"
    VALIDATED = "validated"
    PACKAGED = "packaged"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    """Archive produced for one mod and the installed copy of it."""

    archive_path: Path
    install_path: Path
    file_count: int
    replaced_existing: bool


@dataclass(frozen=True, slots=True)
class ModOutcome:
    """Terminal record for one mod in a run."""

    name: str
    source_dir: Path
    state: ModState
    failed_stage: ModState | None = None
    version: str | None = None
    archive_path: Path | None = None
    install_path: Path | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is not ModState.FAILED

    def as_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "version": self.version,
            "source_dir": str(self.source_dir),
            "state": self.state.value,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "archive_path": str(self.archive_path) if self.archive_path else None,
            "install_path": str(self.install_path) if self.install_path else None,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class InstallRunOptions:
    """Runtime options for a repository run."""

    install: bool = True
    mod_path: Path | None = None
    write_summary: bool = True


@dataclass(frozen=True, slots=True)
class InstallRunResult:
    """Return object for repository run outcomes."""

    run_id: str
    outcomes: tuple[ModOutcome, ...]
    summary: dict[str, Any]
    summary_path: Path | None

    @property
    def failed(self) -> tuple[ModOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.succeeded)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def archive_options_from_settings(settings: AppSettings, logger: logging.Logger | None = None) -> ArchiveOptions:
    """Build archive options from the packaging section of the settings."""

    packaging = settings.packaging
    return ArchiveOptions(
        excludes=tuple(packaging.excludes),
        symlinks=packaging.symlinks,
        compression=packaging.compression,
        compression_level=packaging.compression_level,
        default_thumbnail=load_default_thumbnail(
            packaging.default_thumbnail,
            settings.paths.repo_root,
            logger=logger,
        ),
    )


def package_mod(
    descriptor: ModDescriptor,
    build_dir: Path,
    *,
    archive_options: ArchiveOptions | None = None,
    logger: logging.Logger | None = None,
) -> ArchiveResult:
    """Build the archive for one descriptor; stray OS errors become IoFailure."""

    try:
        return build_archive(descriptor, build_dir, options=archive_options, logger=logger)
    except OSError as exc:
        raise IoFailure(descriptor.source_dir, str(exc)) from exc


def install_package(
    archive: ArchiveResult,
    mods_dir: Path,
    *,
    on_existing: ExistingFilePolicy = "overwrite",
    logger: logging.Logger | None = None,
) -> BuildArtifact:
    """Copy a built archive into ``mods_dir``; stray OS errors become IoFailure."""

    try:
        installed = install_archive(archive.archive_path, mods_dir, on_existing=on_existing, logger=logger)
    except OSError as exc:
        raise IoFailure(archive.archive_path, str(exc)) from exc
    return BuildArtifact(
        archive_path=archive.archive_path,
        install_path=installed.install_path,
        file_count=archive.file_count,
        replaced_existing=installed.replaced_existing,
    )


def package_and_install(
    descriptor: ModDescriptor,
    *,
    build_dir: Path,
    mods_dir: Path,
    archive_options: ArchiveOptions | None = None,
    on_existing: ExistingFilePolicy = "overwrite",
    logger: logging.Logger | None = None,
) -> BuildArtifact:
    """Build the archive for one descriptor and copy it into ``mods_dir``."""

    effective_logger = logger or LOGGER
    archive = package_mod(descriptor, build_dir, archive_options=archive_options, logger=effective_logger)
    return install_package(archive, mods_dir, on_existing=on_existing, logger=effective_logger)


def ensure_build_dir(build_dir: Path) -> Path:
    """Create and probe the build directory; failure is fatal for the run."""

    try:
        build_dir.mkdir(parents=True, exist_ok=True)
        probe_writable(build_dir)
    except OSError as exc:
        raise IoFailure(build_dir, f"build directory is not writable ({exc})", fatal=True) from exc
    return build_dir


def _resolve_target(settings: AppSettings) -> tuple[Path | None, InstallPathUnavailable | None]:
    if settings.install.mods_dir is not None:
        return settings.install.mods_dir.expanduser(), None
    try:
        return default_mods_dir(), None
    except InstallPathUnavailable as exc:
        return None, exc


def _failed(descriptor: ModDescriptor, stage: ModState, exc: Exception, archive_path: Path | None = None) -> ModOutcome:
    return ModOutcome(
        name=descriptor.name,
        version=descriptor.version,
        source_dir=descriptor.source_dir,
        state=ModState.FAILED,
        failed_stage=stage,
        archive_path=archive_path,
        error=str(exc),
    )


def _process_one(
    descriptor: ModDescriptor,
    *,
    settings: AppSettings,
    run_options: InstallRunOptions,
    archive_options: ArchiveOptions,
    mods_dir: Path | None,
    mods_dir_error: InstallPathUnavailable | None,
    logger: logging.Logger,
) -> ModOutcome:
    """Drive one descriptor from validated to a terminal state."""

    stage = ModState.VALIDATED
    try:
        archive = package_mod(
            descriptor,
            settings.paths.build_dir,
            archive_options=archive_options,
            logger=logger,
        )
    except IoFailure as exc:
        if exc.fatal:
            raise
        return _failed(descriptor, stage, exc)
    except ModzipError as exc:
        return _failed(descriptor, stage, exc)

    stage = ModState.PACKAGED
    if not run_options.install:
        return ModOutcome(
            name=descriptor.name,
            version=descriptor.version,
            source_dir=descriptor.source_dir,
            state=ModState.PACKAGED,
            archive_path=archive.archive_path,
        )

    try:
        if mods_dir is None:
            raise mods_dir_error or InstallPathUnavailable(None, "mods directory could not be resolved")
        artifact = install_package(
            archive,
            mods_dir,
            on_existing=settings.install.on_existing,
            logger=logger,
        )
    except ModzipError as exc:
        return _failed(descriptor, stage, exc, archive_path=archive.archive_path)

    return ModOutcome(
        name=descriptor.name,
        version=descriptor.version,
        source_dir=descriptor.source_dir,
        state=ModState.INSTALLED,
        archive_path=artifact.archive_path,
        install_path=artifact.install_path,
    )


def _discover(settings: AppSettings, name_filter: str | None, run_options: InstallRunOptions, logger: logging.Logger) -> DiscoveryResult:
    if run_options.mod_path is not None:
        return discover_mod_at(run_options.mod_path, settings.packaging.metadata_file)
    discovery = discover_mods(
        settings.paths.repo_root,
        name_filter,
        metadata_file=settings.packaging.metadata_file,
        excludes=tuple(settings.packaging.excludes),
        logger=logger,
    )
    if discovery.is_empty:
        raise NoMatchingMod(None, settings.paths.repo_root)
    return discovery


def run_install(
    settings: AppSettings,
    *,
    name_filter: str | None = None,
    options: InstallRunOptions | None = None,
    logger: logging.Logger | None = None,
) -> InstallRunResult:
    """Package (and by default install) every discovered mod, one at a time.

    Raises NotARepository, NoMatchingMod, or a fatal IoFailure before any
    packaging starts. Per-mod failures are recorded in the outcomes and never
    stop the batch.
    """

    effective_logger = logger or LOGGER
    run_options = options or InstallRunOptions()

    started_ts = now_utc()
    started_mono = time.monotonic()
    run_id = f"install-{run_stamp(started_ts)}-{uuid4().hex[:8]}"

    discovery = _discover(settings, name_filter, run_options, effective_logger)
    build_dir = ensure_build_dir(settings.paths.build_dir)

    mods_dir: Path | None = None
    mods_dir_error: InstallPathUnavailable | None = None
    if run_options.install:
        mods_dir, mods_dir_error = _resolve_target(settings)
        if mods_dir_error is not None:
            effective_logger.warning("install_run.mods_dir_unavailable reason=%s", mods_dir_error.reason)

    archive_options = archive_options_from_settings(settings, logger=effective_logger)

    effective_logger.info(
        "install_run.start run_id=%s repo_root=%s mods=%s malformed=%s build_dir=%s mods_dir=%s install=%s",
        run_id,
        settings.paths.repo_root,
        len(discovery.descriptors),
        len(discovery.errors),
        build_dir,
        mods_dir,
        run_options.install,
    )

    outcomes: list[ModOutcome] = []
    for error in discovery.errors:
        outcomes.append(
            ModOutcome(
                name=error.source_dir.name,
                source_dir=error.source_dir,
                state=ModState.FAILED,
                failed_stage=ModState.DISCOVERED,
                error=str(error),
            )
        )

    total = len(discovery.descriptors)
    for processed_idx, descriptor in enumerate(discovery.descriptors, start=1):
        outcome = _process_one(
            descriptor,
            settings=settings,
            run_options=run_options,
            archive_options=archive_options,
            mods_dir=mods_dir,
            mods_dir_error=mods_dir_error,
            logger=effective_logger,
        )
        if outcome.succeeded:
            effective_logger.info(
                "install_run.mod_done progress=%s/%s token=%s state=%s",
                processed_idx,
                total,
                descriptor.token,
                outcome.state.value,
            )
        else:
            effective_logger.error(
                "install_run.mod_failed progress=%s/%s token=%s stage=%s error=%s",
                processed_idx,
                total,
                descriptor.token,
                outcome.failed_stage.value if outcome.failed_stage else None,
                outcome.error,
            )
        outcomes.append(outcome)

    finished_ts = now_utc()
    duration_sec = time.monotonic() - started_mono
    failed_count = sum(1 for outcome in outcomes if not outcome.succeeded)

    summary: dict[str, Any] = {
        "run_id": run_id,
        "started_ts": started_ts.isoformat(),
        "finished_ts": finished_ts.isoformat(),
        "duration_sec": round(duration_sec, 3),
        "repo_root": str(settings.paths.repo_root),
        "name_filter": name_filter,
        "install": run_options.install,
        "mods_discovered_total": len(discovery.descriptors),
        "mods_malformed_total": len(discovery.errors),
        "mods_succeeded": len(outcomes) - failed_count,
        "mods_failed": failed_count,
        "outputs": {
            "build_dir": str(build_dir),
            "mods_dir": str(mods_dir) if mods_dir is not None else None,
        },
        "outcomes": [outcome.as_dict() for outcome in outcomes],
    }

    summary_path: Path | None = None
    if run_options.write_summary:
        summary_path = write_json_atomically(
            summary,
            settings.paths.summaries_root / f"{run_id}_install_summary.json",
        )

    effective_logger.info(
        "install_run.complete run_id=%s succeeded=%s failed=%s duration_sec=%.2f",
        run_id,
        summary["mods_succeeded"],
        failed_count,
        duration_sec,
    )
    return InstallRunResult(
        run_id=run_id,
        outcomes=tuple(outcomes),
        summary=summary,
        summary_path=summary_path,
    )
