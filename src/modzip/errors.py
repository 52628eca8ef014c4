"""Exception taxonomy for discovery, packaging, and install failures."""

from __future__ import annotations

from pathlib import Path


class ModzipError(Exception):
    """Base class for all modzip errors."""


class NotARepository(ModzipError):
    """Repository root is missing or not a directory."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Not a repository directory: {path}")


class NoMatchingMod(ModzipError):
    """Name filter matched nothing, or no mods exist at all."""

    def __init__(self, name_filter: str | None, repo_root: Path) -> None:
        self.name_filter = name_filter
        self.repo_root = repo_root
        if name_filter is None:
            message = f"No mods found under {repo_root}. Place an info.json in the repo root or in subfolders."
        else:
            message = f"No mod matching {name_filter!r} found under {repo_root}"
        super().__init__(message)


class MalformedDescriptor(ModzipError):
    """Metadata file is unreadable or does not satisfy the descriptor schema."""

    def __init__(self, source_dir: Path, reason: str) -> None:
        self.source_dir = source_dir
        self.reason = reason
        super().__init__(f"Malformed mod metadata in {source_dir}: {reason}")


class UnsupportedEntry(ModzipError):
    """Filesystem entry that cannot be placed in an archive."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unsupported entry {path}: {reason}")


class InstallPathUnavailable(ModzipError):
    """Platform mod directory cannot be resolved or created."""

    def __init__(self, path: Path | None, reason: str) -> None:
        self.path = path
        self.reason = reason
        location = str(path) if path is not None else "<unresolved>"
        super().__init__(f"Install directory unavailable ({location}): {reason}")


class IoFailure(ModzipError):
    """Read, write, or copy failure.

    ``fatal`` marks failures that leave no mod able to succeed, such as an
    unwritable build output directory.
    """

    def __init__(self, path: Path, reason: str, *, fatal: bool = False) -> None:
        self.path = path
        self.reason = reason
        self.fatal = fatal
        super().__init__(f"I/O failure at {path}: {reason}")
