"""Build ``<name>_<version>.zip`` archives with a single top-level folder."""

from __future__ import annotations

import logging
import os
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Sequence

from modzip.config import DEFAULT_EXCLUDES, CompressionName, SymlinkPolicy
from modzip.discover.descriptor import ModDescriptor
from modzip.errors import IoFailure, UnsupportedEntry
from modzip.utils.paths import atomic_temp_path

LOGGER = logging.getLogger(__name__)

# Earliest timestamp a zip entry can carry; pinned so rebuilds are byte-identical.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)
THUMBNAIL_NAME = "thumbnail.png"
DEFAULT_THUMBNAIL_FALLBACK = Path("assets") / "default_thumbnail.png"

COMPRESSION_METHODS: dict[str, int] = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
    "bzip2": zipfile.ZIP_BZIP2,
    "lzma": zipfile.ZIP_LZMA,
}


@dataclass(frozen=True, slots=True)
class ArchiveOptions:
    """Archive construction options."""

    excludes: tuple[str, ...] = DEFAULT_EXCLUDES
    symlinks: SymlinkPolicy = "follow"
    compression: CompressionName = "deflated"
    compression_level: int | None = None
    default_thumbnail: bytes | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ArchiveResult:
    """Outcome of one archive build."""

    archive_path: Path
    file_count: int
    dir_count: int
    injected_thumbnail: bool


@dataclass(frozen=True, slots=True)
class _Entry:
    arcname: str
    source: Path | None
    mode: int

    @property
    def is_dir(self) -> bool:
        return self.source is None


def load_default_thumbnail(
    explicit: Path | None,
    repo_root: Path | None = None,
    logger: logging.Logger | None = None,
) -> bytes | None:
    """Read the default thumbnail from an explicit path or ``<repo_root>/assets``."""

    effective_logger = logger or LOGGER
    if explicit is not None:
        try:
            return explicit.read_bytes()
        except OSError as exc:
            effective_logger.warning("archive.default_thumbnail_unreadable path=%s error=%s", explicit, exc)

    if repo_root is None:
        return None
    fallback = repo_root / DEFAULT_THUMBNAIL_FALLBACK
    if fallback.is_file():
        return fallback.read_bytes()
    return None


def _resolve_link(path: Path, policy: SymlinkPolicy) -> None:
    if policy == "reject":
        raise UnsupportedEntry(path, "symbolic links are rejected by the configured policy")
    try:
        path.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise UnsupportedEntry(path, f"symbolic link cannot be resolved ({exc})") from exc


def _collect_entries(
    source_dir: Path,
    token: str,
    options: ArchiveOptions,
    skip_dirs: Sequence[Path] = (),
) -> list[_Entry]:
    """Walk ``source_dir`` depth-first in name order and return archive entries.

    Raises UnsupportedEntry before anything is written so a rejected mod never
    leaves a partial archive behind.
    """

    top = PurePosixPath(token)
    entries: list[_Entry] = [_Entry(arcname=f"{top}/", source=None, mode=stat.S_IMODE(source_dir.stat().st_mode))]
    skipped = {path.resolve() for path in skip_dirs}

    def walk(directory: Path, rel: PurePosixPath, ancestors: frozenset[Path]) -> None:
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            rel_child = rel / child.name
            if len(rel_child.parts) == 1 and child.name in options.excludes:
                continue
            if child.is_symlink():
                _resolve_link(child, options.symlinks)

            try:
                st = child.stat()
            except OSError as exc:
                raise IoFailure(child, f"cannot stat entry ({exc})") from exc
            mode = stat.S_IMODE(st.st_mode)

            if stat.S_ISDIR(st.st_mode):
                real = child.resolve()
                if real in skipped:
                    continue
                if real in ancestors:
                    raise UnsupportedEntry(child, "directory link loops back into one of its ancestors")
                entries.append(_Entry(arcname=f"{top / rel_child}/", source=None, mode=mode))
                walk(child, rel_child, ancestors | {real})
            elif stat.S_ISREG(st.st_mode):
                entries.append(_Entry(arcname=str(top / rel_child), source=child, mode=mode))
            else:
                raise UnsupportedEntry(child, "not a regular file or directory")

    walk(source_dir, PurePosixPath(), frozenset({source_dir.resolve()}))
    return entries


def _zip_info(arcname: str, mode: int, is_dir: bool) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=FIXED_DATE_TIME)
    info.create_system = 3
    file_type = stat.S_IFDIR if is_dir else stat.S_IFREG
    info.external_attr = (file_type | mode) << 16
    if is_dir:
        info.external_attr |= 0x10
    return info


def build_archive(
    descriptor: ModDescriptor,
    build_dir: Path,
    *,
    options: ArchiveOptions | None = None,
    logger: logging.Logger | None = None,
) -> ArchiveResult:
    """Package ``descriptor.source_dir`` into ``build_dir/<name>_<version>.zip``.

    The archive holds exactly one top-level directory named after the
    descriptor token. An existing archive of the same name is replaced
    atomically.
    """

    effective_logger = logger or LOGGER
    archive_options = options or ArchiveOptions()
    token = descriptor.token
    archive_path = build_dir / descriptor.archive_name
    compress_type = COMPRESSION_METHODS[archive_options.compression]

    entries = _collect_entries(descriptor.source_dir, token, archive_options, skip_dirs=(build_dir,))
    thumbnail = archive_options.default_thumbnail
    if (descriptor.source_dir / THUMBNAIL_NAME).exists():
        thumbnail = None

    try:
        build_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IoFailure(build_dir, f"cannot create build directory ({exc})", fatal=True) from exc

    temp_path = atomic_temp_path(archive_path)
    file_count = 0
    dir_count = 0
    try:
        with zipfile.ZipFile(temp_path, "w") as archive:
            for entry in entries:
                info = _zip_info(entry.arcname, entry.mode, entry.is_dir)
                if entry.source is None:
                    archive.writestr(info, b"", compress_type=zipfile.ZIP_STORED)
                    dir_count += 1
                    effective_logger.debug("archive.dir arcname=%s", entry.arcname)
                    continue
                archive.writestr(
                    info,
                    entry.source.read_bytes(),
                    compress_type=compress_type,
                    compresslevel=archive_options.compression_level,
                )
                file_count += 1
                effective_logger.debug("archive.file source=%s arcname=%s", entry.source, entry.arcname)

            if thumbnail is not None:
                archive.writestr(
                    _zip_info(f"{token}/{THUMBNAIL_NAME}", 0o644, is_dir=False),
                    thumbnail,
                    compress_type=compress_type,
                    compresslevel=archive_options.compression_level,
                )
                file_count += 1
                effective_logger.debug("archive.injected_default_thumbnail token=%s", token)
        os.replace(temp_path, archive_path)
    except OSError as exc:
        raise IoFailure(archive_path, f"cannot write archive ({exc})") from exc
    finally:
        if temp_path.exists():
            temp_path.unlink()

    effective_logger.info(
        "archive.built path=%s files=%s dirs=%s",
        archive_path,
        file_count,
        dir_count,
    )
    return ArchiveResult(
        archive_path=archive_path,
        file_count=file_count,
        dir_count=dir_count,
        injected_thumbnail=thumbnail is not None,
    )
