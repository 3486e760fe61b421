"""
Command runners.
"""

from execguard.sandbox._base import CommandRunner
from execguard.sandbox.process import (
    DEADLINE_BUFFER_SECONDS,
    MAX_OUTPUT_BYTES,
    CappedBuffer,
    ProcessRunner,
    build_argv,
    kill_process_tree,
)

__all__ = [
    "CommandRunner",
    "ProcessRunner",
    "CappedBuffer",
    "build_argv",
    "kill_process_tree",
    "DEADLINE_BUFFER_SECONDS",
    "MAX_OUTPUT_BYTES",
]
