"""Core utilities package.

Pure helpers with no project dependencies: subprocess invocation,
display formatting and staging-tree measurement.
"""

from ffbuild.core.formatting import format_duration, format_file_size
from ffbuild.core.fs_utils import (
    bytes_to_kb_rounded_up,
    iter_tree_files,
    tree_size_bytes,
)
from ffbuild.core.subprocess_utils import run_command

__all__ = [
    "bytes_to_kb_rounded_up",
    "format_duration",
    "format_file_size",
    "iter_tree_files",
    "run_command",
    "tree_size_bytes",
]
