"""Expose an open descriptor slot as a path another program can open."""

from __future__ import annotations

import os
from dataclasses import dataclass

from ediff.fdops import COMPARATOR_SLOTS

PROC_FD_DIR = "/proc/self/fd"
DEV_FD_DIR = "/dev/fd"


def default_fd_dir() -> str:
    """/proc/self/fd on Linux, /dev/fd elsewhere."""
    if os.path.isdir(PROC_FD_DIR):
        return PROC_FD_DIR
    return DEV_FD_DIR


@dataclass(frozen=True)
class FdPaths:
    """Path aliases for the comparator's input slots.

    The aliases are resolved by the program that opens them, so they name
    the comparator's own fd table, not the parent's.
    """

    directory: str
    slots: tuple[int, int] = COMPARATOR_SLOTS

    def path(self, fd: int) -> str:
        return f"{self.directory}/{fd}"

    def slot_paths(self) -> tuple[str, str]:
        left, right = self.slots
        return self.path(left), self.path(right)
