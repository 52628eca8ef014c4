"""Mod descriptor parsing from ``info.json`` metadata files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from modzip.errors import MalformedDescriptor

DEFAULT_METADATA_FILE = "info.json"
_UNSAFE_CHARS = ("/", "\\", "\x00")


class ModInfo(BaseModel):
    """Schema for the fields of ``info.json`` that packaging depends on.

    Other keys (title, author, dependencies, ...) are accepted and ignored.
    """

    model_config = ConfigDict(extra="ignore", strict=True)

    name: str
    version: str

    @field_validator("name", "version")
    @classmethod
    def _filesystem_safe(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        if value != value.strip():
            raise ValueError("must not have leading or trailing whitespace")
        if any(char in value for char in _UNSAFE_CHARS):
            raise ValueError("must not contain path separators")
        if value in {".", ".."}:
            raise ValueError("must not be a relative path component")
        return value


@dataclass(frozen=True, slots=True)
class ModDescriptor:
    """Parsed identity of one mod directory."""

    name: str
    version: str
    source_dir: Path

    @property
    def token(self) -> str:
        """Return ``<name>_<version>``, the archive base name and top-level folder."""

        return f"{self.name}_{self.version}"

    @property
    def archive_name(self) -> str:
        return f"{self.token}.zip"


def _format_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "<root>"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def has_metadata(mod_dir: Path, metadata_file: str = DEFAULT_METADATA_FILE) -> bool:
    """Return True when ``mod_dir`` holds a metadata file."""

    return (mod_dir / metadata_file).is_file()


def load_descriptor(mod_dir: Path, metadata_file: str = DEFAULT_METADATA_FILE) -> ModDescriptor:
    """Parse ``mod_dir/metadata_file`` into a descriptor or raise MalformedDescriptor."""

    source_dir = mod_dir.resolve()
    info_path = source_dir / metadata_file
    try:
        raw_text = info_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise MalformedDescriptor(source_dir, f"no {metadata_file} found") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedDescriptor(source_dir, f"cannot read {metadata_file}: {exc}") from exc

    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise MalformedDescriptor(source_dir, f"invalid JSON in {metadata_file}: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedDescriptor(source_dir, f"{metadata_file} must contain a JSON object")

    try:
        info = ModInfo.model_validate(payload)
    except ValidationError as exc:
        raise MalformedDescriptor(source_dir, _format_validation_error(exc)) from exc

    return ModDescriptor(name=info.name, version=info.version, source_dir=source_dir)
