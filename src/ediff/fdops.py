"""Fd-table simulation: build an ordered op list for a child process.

Pure simulation, no OS calls. Methods record abstract operations and
track the child's live fd set and which of those fds survive exec. The
runtime interprets the ops into real syscalls between fork() and exec().
"""

from __future__ import annotations

from dataclasses import dataclass

STDIN: int = 0
STDOUT: int = 1
STDERR: int = 2

# The comparison tool reads the two captured streams from these slots.
COMPARATOR_SLOTS: tuple[int, int] = (3, 4)

# Setup descriptors are renumbered to at least this, clear of 0-4.
MIN_ALIAS_FD: int = COMPARATOR_SLOTS[-1] + 1


# ── Operations (pure data, interpreted by runtime) ───────────────────


@dataclass(frozen=True)
class OpDup2:
    src: int
    dst: int


@dataclass(frozen=True)
class OpClose:
    fd: int


@dataclass(frozen=True)
class OpClearCloexec:
    fd: int


@dataclass(frozen=True)
class OpEmptyInput:
    fd: int


Op = OpDup2 | OpClose | OpClearCloexec | OpEmptyInput


# ── FdOps simulator ─────────────────────────────────────────────────


class FdOps:
    """Simulate child fd table, emit ops and the fds visible after exec.

    Pure data structure: records operations and tracks which fds are
    alive in the child and which are inheritable. dup2 produces a
    close-on-exec fd; only clear_cloexec() (or empty_input()) lets a
    descriptor survive into the exec'd program.

    Constructor takes initial live fds: the standard streams the child
    inherits, which are already inheritable.
    """

    def __init__(self, live: set[int] | None = None) -> None:
        self._ops: list[Op] = []
        self._live: set[int] = set(live) if live is not None else set()
        self._inheritable: set[int] = set(self._live)

    def add_live(self, fd: int) -> None:
        """Register a parent-allocated (close-on-exec) fd as live."""
        self._live.add(fd)
        self._inheritable.discard(fd)

    def dup2(self, src: int, dst: int) -> None:
        """dup2(src, dst). dst becomes live and close-on-exec, src stays live."""
        if src not in self._live:
            raise ValueError(f"dup2 source fd {src} is not live")
        self._ops.append(OpDup2(src, dst))
        self._live.add(dst)
        self._inheritable.discard(dst)

    def move_fd(self, src: int, dst: int) -> None:
        """dup2(src, dst) then close(src). Use for pipe wiring."""
        self.dup2(src, dst)
        self.close(src)

    def close(self, fd: int) -> None:
        """close(fd). fd leaves live set."""
        self._ops.append(OpClose(fd))
        self._live.discard(fd)
        self._inheritable.discard(fd)

    def clear_cloexec(self, fd: int) -> None:
        """Mark fd to survive exec."""
        if fd not in self._live:
            raise ValueError(f"cannot clear close-on-exec on fd {fd}: not live")
        self._ops.append(OpClearCloexec(fd))
        self._inheritable.add(fd)

    def empty_input(self, fd: int) -> None:
        """Bind fd to an already-exhausted pipe. fd becomes live and inheritable."""
        self._ops.append(OpEmptyInput(fd))
        self._live.add(fd)
        self._inheritable.add(fd)

    @property
    def ops(self) -> tuple[Op, ...]:
        """Ordered operations for the child."""
        return tuple(self._ops)

    @property
    def live(self) -> frozenset[int]:
        """Fds alive in child after all ops."""
        return frozenset(self._live)

    def exec_fds(self) -> tuple[int, ...]:
        """Fds the exec'd program will see, sorted."""
        return tuple(sorted(self._live & self._inheritable))
