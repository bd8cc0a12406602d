"""
Per-unit output capture.

While a unit builds, everything written to the process's stdout and
stderr (Python's sys streams and file descriptors 1 and 2, so child
processes are captured too) is copied both to the original stdout and to
`<log_dir>/<unit>.log`.

Usage:
    from distbuild.lib.tee import tee_output

    with tee_output(log_dir, "base-files"):
        builder.build("base-files")

Only one capture may be active at a time: redirection mutates the
process-wide streams. Parallel builds would need per-unit pipes handed to
each build instead.
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHUNK_SIZE = 65536

_active = threading.Lock()


def log_path_for(log_dir: Path, unit: str) -> Path:
    return Path(log_dir) / f"{unit}.log"


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def _copy(read_fd: int, console_fd: int, log_file) -> None:
    """Copy the pipe to the console and the log until every writer closes."""
    while True:
        chunk = os.read(read_fd, CHUNK_SIZE)
        if not chunk:
            break
        _write_all(console_fd, chunk)
        log_file.write(chunk)
    log_file.flush()


def _flush(*streams) -> None:
    for stream in streams:
        try:
            stream.flush()
        except (AttributeError, ValueError):
            pass


class _Redirect:
    """Process-wide stdout/stderr redirection into a pipe."""

    def __init__(self, write_fd: int):
        self._lock = threading.Lock()
        self.restored = False

        _flush(sys.stdout, sys.stderr)
        self.saved_stdout_fd = os.dup(1)
        self.saved_stderr_fd = os.dup(2)
        self.saved_sys_stdout = sys.stdout
        self.saved_sys_stderr = sys.stderr

        self.pipe_writer = open(write_fd, "w", buffering=1, encoding="utf-8",
                                errors="replace", closefd=False)
        os.dup2(write_fd, 1)
        os.dup2(write_fd, 2)
        sys.stdout = self.pipe_writer
        sys.stderr = self.pipe_writer

    def restore(self) -> bool:
        """Point the process streams back at the originals, once."""
        with self._lock:
            if self.restored:
                return False
            _flush(self.pipe_writer, self.saved_sys_stdout, self.saved_sys_stderr)
            sys.stdout = self.saved_sys_stdout
            sys.stderr = self.saved_sys_stderr
            os.dup2(self.saved_stdout_fd, 1)
            os.dup2(self.saved_stderr_fd, 2)
            self.restored = True
            return True

    def close(self) -> None:
        self.restore()
        with self._lock:
            self.pipe_writer.close()

    def close_saved(self) -> None:
        os.close(self.saved_stdout_fd)
        os.close(self.saved_stderr_fd)


_current: Optional[_Redirect] = None


def release_console() -> bool:
    """
    Give the original stdout/stderr back to the caller while a capture
    is still running.

    The captured unit's child processes keep writing to its log; only
    output produced after this call through the process streams goes to
    the console alone. Returns False when nothing was captured.
    """
    redirect = _current
    if redirect is None:
        return False
    return redirect.restore()


@contextmanager
def tee_output(log_dir: Path, unit: str) -> Iterator[Path]:
    """
    Duplicate stdout/stderr to the console and the unit's log file.

    The copy is fully drained and the original streams restored before
    the context exits, whether or not the body raised.
    """
    global _current

    if not _active.acquire(blocking=False):
        raise RuntimeError("output is already being captured for another unit")

    try:
        path = log_path_for(log_dir, unit)
        log_file = open(path, "wb")
        try:
            read_fd, write_fd = os.pipe()
            redirect = _Redirect(write_fd)

            copier = threading.Thread(
                target=_copy,
                args=(read_fd, redirect.saved_stdout_fd, log_file),
                name=f"tee-{unit}",
                daemon=True,
            )
            copier.start()
            _current = redirect

            try:
                yield path
            finally:
                _current = None
                redirect.close()
                os.close(write_fd)
                copier.join()
                os.close(read_fd)
                redirect.close_saved()
        finally:
            log_file.close()
    finally:
        _active.release()


def tee_and_eval(log_dir: Path, unit: str, fn: Callable[[], T]) -> T:
    """Run `fn` with its output captured to the unit's log."""
    with tee_output(log_dir, unit):
        return fn()
