"""Discovery of mod directories and their metadata."""

from modzip.discover.descriptor import (
    DEFAULT_METADATA_FILE,
    ModDescriptor,
    ModInfo,
    has_metadata,
    load_descriptor,
)
from modzip.discover.loader import DiscoveryResult, discover_mod_at, discover_mods

__all__ = [
    "DEFAULT_METADATA_FILE",
    "ModDescriptor",
    "ModInfo",
    "has_metadata",
    "load_descriptor",
    "DiscoveryResult",
    "discover_mods",
    "discover_mod_at",
]
