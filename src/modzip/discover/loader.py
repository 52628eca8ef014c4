"""Discover mod directories under a repository root."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from modzip.config import DEFAULT_EXCLUDES
from modzip.discover.descriptor import DEFAULT_METADATA_FILE, ModDescriptor, has_metadata, load_descriptor
from modzip.errors import MalformedDescriptor, NoMatchingMod, NotARepository

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Descriptors found in a repository plus the directories that failed to parse."""

    descriptors: tuple[ModDescriptor, ...]
    errors: tuple[MalformedDescriptor, ...]

    @property
    def is_empty(self) -> bool:
        return not self.descriptors and not self.errors


def _candidate_dirs(repo_root: Path, excludes: Sequence[str], include_root: bool) -> list[Path]:
    """Return the repo root (optionally) followed by child directories sorted by name."""

    candidates: list[Path] = [repo_root] if include_root else []
    children = sorted((child for child in repo_root.iterdir() if child.is_dir()), key=lambda p: p.name)
    candidates.extend(child for child in children if child.name not in excludes)
    return candidates


def _matches(name_filter: str, candidate: Path, descriptor: ModDescriptor | None) -> bool:
    if descriptor is not None and descriptor.name == name_filter:
        return True
    return candidate.name == name_filter


def discover_mods(
    repo_root: Path,
    name_filter: str | None = None,
    *,
    metadata_file: str = DEFAULT_METADATA_FILE,
    include_root: bool = True,
    excludes: Sequence[str] = DEFAULT_EXCLUDES,
    logger: logging.Logger | None = None,
) -> DiscoveryResult:
    """Scan ``repo_root`` and its immediate subdirectories for mod metadata.

    Directories without a metadata file are skipped silently. Malformed
    metadata does not stop the scan; the errors are collected and returned
    alongside the valid descriptors. With a ``name_filter``, a directory is
    kept when either its descriptor name or its directory name equals the
    filter, and NoMatchingMod is raised when nothing is kept. A directory whose
    name and version repeat an earlier one is reported as malformed, since both
    would build the same archive.
    """

    effective_logger = logger or LOGGER
    if not repo_root.is_dir():
        raise NotARepository(repo_root)
    root = repo_root.resolve()

    descriptors: list[ModDescriptor] = []
    errors: list[MalformedDescriptor] = []
    seen_tokens: dict[str, Path] = {}
    for candidate in _candidate_dirs(root, excludes, include_root):
        error: MalformedDescriptor | None = None
        try:
            if not has_metadata(candidate, metadata_file):
                effective_logger.debug("discover.skip_no_metadata dir=%s", candidate)
                continue
            descriptor = load_descriptor(candidate, metadata_file)
        except MalformedDescriptor as exc:
            error = exc
        except OSError as exc:
            error = MalformedDescriptor(candidate, f"cannot read {metadata_file} ({exc})")
        if error is not None:
            if name_filter is not None and not _matches(name_filter, candidate, None):
                continue
            effective_logger.warning("discover.malformed dir=%s reason=%s", candidate, error.reason)
            errors.append(error)
            continue

        if name_filter is not None and not _matches(name_filter, candidate, descriptor):
            continue
        first_dir = seen_tokens.get(descriptor.token)
        if first_dir is not None:
            duplicate = MalformedDescriptor(candidate, f"{descriptor.token} is already declared by {first_dir}")
            effective_logger.warning("discover.duplicate dir=%s token=%s first=%s", candidate, descriptor.token, first_dir)
            errors.append(duplicate)
            continue
        seen_tokens[descriptor.token] = candidate
        effective_logger.debug(
            "discover.found name=%s version=%s dir=%s",
            descriptor.name,
            descriptor.version,
            descriptor.source_dir,
        )
        descriptors.append(descriptor)

    result = DiscoveryResult(descriptors=tuple(descriptors), errors=tuple(errors))
    if name_filter is not None and result.is_empty:
        raise NoMatchingMod(name_filter, root)

    effective_logger.info(
        "discover.done repo_root=%s found=%s malformed=%s filter=%s",
        root,
        len(result.descriptors),
        len(result.errors),
        name_filter,
    )
    return result


def discover_mod_at(mod_dir: Path, metadata_file: str = DEFAULT_METADATA_FILE) -> DiscoveryResult:
    """Load a single explicitly given mod directory."""

    if not mod_dir.is_dir():
        raise NotARepository(mod_dir)
    try:
        descriptor = load_descriptor(mod_dir, metadata_file)
    except MalformedDescriptor as exc:
        return DiscoveryResult(descriptors=(), errors=(exc,))
    return DiscoveryResult(descriptors=(descriptor,), errors=())
