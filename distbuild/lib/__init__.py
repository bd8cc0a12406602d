"""
Shared library modules for distbuild.

Modules:
    tee: Per-unit capture of stdout/stderr to console and log file
"""

from distbuild.lib.tee import log_path_for, release_console, tee_and_eval, tee_output

__all__ = [
    "log_path_for",
    "release_console",
    "tee_and_eval",
    "tee_output",
]
