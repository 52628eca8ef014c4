from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_mod
from modzip.discover.descriptor import ModDescriptor, has_metadata, load_descriptor
from modzip.errors import MalformedDescriptor


def test_load_descriptor_reads_name_and_version(tmp_path: Path):
    mod_dir = write_mod(tmp_path, "planets", name="planets", version="1.2.0")

    descriptor = load_descriptor(mod_dir)

    assert descriptor == ModDescriptor(name="planets", version="1.2.0", source_dir=mod_dir.resolve())
    assert descriptor.token == "planets_1.2.0"
    assert descriptor.archive_name == "planets_1.2.0.zip"


def test_load_descriptor_ignores_extra_info_fields(tmp_path: Path):
    mod_dir = write_mod(
        tmp_path,
        "rails",
        info={
            "name": "better-rails",
            "version": "0.3.11",
            "title": "Better Rails",
            "author": "someone",
            "factorio_version": "1.1",
            "dependencies": ["base >= 1.1"],
        },
    )

    descriptor = load_descriptor(mod_dir)

    assert (descriptor.name, descriptor.version) == ("better-rails", "0.3.11")


def test_descriptor_is_immutable(tmp_path: Path):
    descriptor = load_descriptor(write_mod(tmp_path, "a"))
    with pytest.raises(AttributeError):
        descriptor.name = "b"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("info", "fragment"),
    [
        ("{not json", "invalid JSON"),
        ("[1, 2, 3]", "JSON object"),
        ({"name": "planets"}, "version"),
        ({"version": "1.0.0"}, "name"),
        ({"name": "planets", "version": 1}, "version"),
        ({"name": "", "version": "1.0.0"}, "non-empty"),
        ({"name": "   ", "version": "1.0.0"}, "non-empty"),
        ({"name": "a/b", "version": "1.0.0"}, "path separators"),
        ({"name": "planets", "version": "1.0\\2"}, "path separators"),
        ({"name": "..", "version": "1.0.0"}, "relative path"),
    ],
)
def test_malformed_metadata_raises(tmp_path: Path, info: object, fragment: str):
    mod_dir = write_mod(tmp_path, "broken", info=info)

    with pytest.raises(MalformedDescriptor) as exc_info:
        load_descriptor(mod_dir)

    assert fragment in exc_info.value.reason
    assert exc_info.value.source_dir == mod_dir.resolve()


def test_missing_metadata_file_is_malformed(tmp_path: Path):
    mod_dir = tmp_path / "empty"
    mod_dir.mkdir()

    assert not has_metadata(mod_dir)
    with pytest.raises(MalformedDescriptor, match="no info.json"):
        load_descriptor(mod_dir)


def test_custom_metadata_file_name(tmp_path: Path):
    mod_dir = tmp_path / "custom"
    mod_dir.mkdir()
    (mod_dir / "mod.json").write_text('{"name": "custom", "version": "2.0.0"}', encoding="utf-8")

    assert has_metadata(mod_dir, "mod.json")
    assert load_descriptor(mod_dir, "mod.json").token == "custom_2.0.0"
