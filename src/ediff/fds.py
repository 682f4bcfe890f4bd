"""Descriptor allocator: pipes, renumbering and close-on-exec control.

These functions make real syscalls. They are used by the parent to set up
pipes, and by children (between fork and exec) to wire the fixed slots.
"""

from __future__ import annotations

import fcntl
import logging
import os
from dataclasses import dataclass

from ediff.errors import SyscallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pipe:
    """Both ends of one unidirectional pipe."""

    read: int
    write: int


def allocate_pipe() -> Pipe:
    """os.pipe(). Both ends are close-on-exec (PEP 446)."""
    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        raise SyscallError.from_oserror("pipe", exc) from exc
    return Pipe(read_fd, write_fd)


def duplicate_above(fd: int, minimum: int) -> int:
    """Duplicate fd onto the lowest free number >= minimum, close-on-exec.

    Like dup() crossed with dup3(..., O_CLOEXEC), but with a floor instead
    of a target. Avoids the case where

        dup2(a.read, 3)
        dup2(b.read, 4)

    clobbers b.read because it was originally 3.
    """
    try:
        return fcntl.fcntl(fd, fcntl.F_DUPFD_CLOEXEC, minimum)
    except OSError as exc:
        raise SyscallError.from_oserror("fcntl F_DUPFD", exc) from exc


def allocate_pipe_above(minimum: int) -> Pipe:
    """Allocate a pipe whose ends both sit at or above minimum."""
    raw = allocate_pipe()
    try:
        read_fd = duplicate_above(raw.read, minimum)
        try:
            write_fd = duplicate_above(raw.write, minimum)
        except SyscallError:
            os.close(read_fd)
            raise
    finally:
        os.close(raw.read)
        os.close(raw.write)
    logger.debug(
        "pipe %d,%d renumbered to %d,%d", raw.read, raw.write, read_fd, write_fd
    )
    return Pipe(read_fd, write_fd)


def clear_close_on_exec(fd: int) -> None:
    """Make fd survive exec."""
    try:
        os.set_inheritable(fd, True)
    except OSError as exc:
        raise SyscallError.from_oserror("fcntl F_SETFD", exc) from exc


def redirect_to_empty_input(target_fd: int) -> None:
    """Bind target_fd to a pipe whose writer is already closed.

    Reads on target_fd return EOF immediately, so the exec'd program never
    shares (or blocks on) the parent's stdin.
    """
    pipe = allocate_pipe()
    os.close(pipe.write)
    if pipe.read == target_fd:
        # target_fd was free and the pipe landed on it; os.pipe() is cloexec.
        clear_close_on_exec(target_fd)
    else:
        try:
            os.dup2(pipe.read, target_fd)
        except OSError as exc:
            raise SyscallError.from_oserror("dup2", exc) from exc
        finally:
            os.close(pipe.read)


def is_open(fd: int) -> bool:
    try:
        fcntl.fcntl(fd, fcntl.F_GETFD)
    except OSError:
        return False
    return True


def reserve_slot(fd: int) -> bool:
    """Park /dev/null on fd if it is free. Returns True if a placeholder was placed.

    Holding the low slots keeps anything allocated during a spawn (such as
    Popen's exec-error pipe) off the numbers the children dup2 onto.
    """
    if is_open(fd):
        return False
    try:
        placeholder = os.open(os.devnull, os.O_RDWR)
    except OSError as exc:
        raise SyscallError.from_oserror("open", exc) from exc
    if placeholder != fd:
        try:
            os.dup2(placeholder, fd, inheritable=False)
        except OSError as exc:
            raise SyscallError.from_oserror("dup2", exc) from exc
        finally:
            os.close(placeholder)
    return True
