"""Shared utility helpers."""

from modzip.utils.paths import atomic_temp_path, probe_writable, write_json_atomically
from modzip.utils.time_utils import now_utc, run_stamp

__all__ = [
    "atomic_temp_path",
    "probe_writable",
    "write_json_atomically",
    "now_utc",
    "run_stamp",
]
