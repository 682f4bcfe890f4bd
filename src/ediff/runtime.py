"""Runtime: spawn the producers and the comparator, supervise, collect."""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import subprocess
from asyncio.subprocess import Process, create_subprocess_exec
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import overload

from ediff.aio import async_read, close_fd
from ediff.argv import build_diff_argv
from ediff.errors import ExecError, SyscallError
from ediff.fdops import (
    COMPARATOR_SLOTS,
    MIN_ALIAS_FD,
    STDERR,
    STDIN,
    STDOUT,
    FdOps,
    Op,
    OpClearCloexec,
    OpClose,
    OpDup2,
    OpEmptyInput,
)
from ediff.fds import (
    allocate_pipe,
    allocate_pipe_above,
    clear_close_on_exec,
    redirect_to_empty_input,
    reserve_slot,
)
from ediff.ir import Job
from ediff.paths import FdPaths

logger = logging.getLogger(__name__)

PRODUCER_A = "producer_a"
PRODUCER_B = "producer_b"
COMPARATOR = "comparator"


class State(enum.Enum):
    INIT = "init"
    PIPES_ALLOCATED = "pipes_allocated"
    PRODUCERS_SPAWNED = "producers_spawned"
    COMPARATOR_SPAWNED = "comparator_spawned"
    WAITING = "waiting"
    DONE = "done"


@dataclass
class OwnedFd:
    """Tracked file descriptor with idempotent close."""

    fd: int
    closed: bool = False

    def close(self) -> None:
        """Close the fd if not already closed."""
        if not self.closed:
            self.closed = True
            close_fd(self.fd)


@dataclass
class Child:
    """A spawned process and the part it plays."""

    role: str
    program: str
    proc: Process


@dataclass
class Result:
    """Comparator-derived exit code, every child's status, optional stdout."""

    code: int
    statuses: dict[str, int] = field(default_factory=dict)
    stdout: bytes | None = None


async def _kill_and_reap(*procs: Process) -> None:
    """Kill and reap processes, shielded from cancellation."""
    reap: list[Coroutine[None, None, int]] = []
    for proc in procs:
        if proc.returncode is None:
            proc.kill()
            reap.append(proc.wait())
    if reap:
        await asyncio.shield(asyncio.gather(*reap))


def _op_name(op: Op) -> str:
    match op:
        case OpDup2():
            return "dup2"
        case OpClose():
            return "close"
        case OpClearCloexec():
            return "fcntl F_SETFD"
        case OpEmptyInput():
            return "empty input"


def _build_preexec(ops: tuple[Op, ...]) -> Callable[[], None] | None:
    """Build a preexec_fn closure that executes all fd ops in the child.

    Runs between fork() and exec(), after Popen has wired its own
    stdin/stdout. Popen is called with close_fds=False: every descriptor
    the parent holds is close-on-exec, so only fds the ops explicitly
    clear survive into the new program.

    Popen only tells the parent that preexec_fn failed, so the failing op
    and its error text are written to the child's stderr first.
    """
    if not ops:
        return None

    def _preexec(frozen_ops: tuple[Op, ...] = ops) -> None:
        for op in frozen_ops:
            try:
                match op:
                    case OpDup2(src, dst):
                        os.dup2(src, dst, inheritable=False)
                    case OpClose(fd):
                        os.close(fd)
                    case OpClearCloexec(fd):
                        clear_close_on_exec(fd)
                    case OpEmptyInput(fd):
                        redirect_to_empty_input(fd)
            except SyscallError as exc:
                os.write(STDERR, f"ediff: {exc}\n".encode())
                raise
            except OSError as exc:
                message = f"ediff: {_op_name(op)}: {exc.strerror}\n"
                os.write(STDERR, message.encode())
                raise

    return _preexec


def producer_ops(write_fd: int) -> FdOps:
    """Child protocol for a stream producer.

    stdout becomes the pipe's write end, stdin reads as exhausted.
    """
    fdo = FdOps(live={STDIN, STDOUT, STDERR})
    fdo.add_live(write_fd)
    fdo.move_fd(write_fd, STDOUT)
    fdo.clear_cloexec(STDOUT)
    fdo.empty_input(STDIN)
    return fdo


def comparator_ops(read_a: int, read_b: int) -> FdOps:
    """Child protocol for the comparator launcher.

    The two read ends land on the fixed slots 3 and 4. Sources must sit
    above the slots, otherwise the first dup2 could clobber the second
    source.
    """
    for fd in (read_a, read_b):
        if fd < MIN_ALIAS_FD:
            raise ValueError(f"source fd {fd} collides with comparator slots")
    slot_a, slot_b = COMPARATOR_SLOTS
    fdo = FdOps(live={STDIN, STDOUT, STDERR})
    fdo.add_live(read_a)
    fdo.add_live(read_b)
    fdo.move_fd(read_a, slot_a)
    fdo.move_fd(read_b, slot_b)
    fdo.clear_cloexec(slot_a)
    fdo.clear_cloexec(slot_b)
    fdo.empty_input(STDIN)
    return fdo


def comparator_argv(job: Job) -> tuple[str, ...]:
    """Comparison tool argv, or the fd listing in debug mode."""
    fd_dir = job.resolved_fd_dir()
    if job.debug:
        return ("ls", "-al", fd_dir)
    return build_diff_argv(
        job.diff_program,
        job.flags,
        (job.cmd_a, job.cmd_b),
        FdPaths(fd_dir).slot_paths(),
    )


class Executor:
    """Runs a Job as three supervised child processes.

    All allocated fds and spawned processes are tracked in flat lists
    so that execute()'s finally block can clean up everything in one
    place, even if a spawn fails partway through or tasks are cancelled.
    """

    def __init__(self) -> None:
        self.fds: list[OwnedFd] = []
        self.children: list[Child] = []
        self.state = State.INIT

    def _advance(self, state: State) -> None:
        logger.debug("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _pipe(self) -> tuple[OwnedFd, OwnedFd]:
        """Allocate a pipe above the comparator slots, tracking both ends."""
        pipe = allocate_pipe_above(MIN_ALIAS_FD)
        read_entry = OwnedFd(pipe.read)
        write_entry = OwnedFd(pipe.write)
        self.fds.append(read_entry)
        self.fds.append(write_entry)
        return read_entry, write_entry

    async def _exec(
        self,
        role: str,
        argv: tuple[str, ...],
        fdo: FdOps,
        stdout: int | None = None,
    ) -> Child:
        """Spawn a child running fdo's ops before exec, tracking it for cleanup."""
        try:
            proc = await create_subprocess_exec(
                *argv,
                stdout=stdout,
                preexec_fn=_build_preexec(fdo.ops),
                close_fds=False,
            )
        except subprocess.SubprocessError as exc:
            # Raised by Popen when an op failed in the child before exec.
            raise SyscallError(f"spawn {role}", None, str(exc)) from exc
        except OSError as exc:
            # Popen sets filename only when the child's exec itself failed.
            if exc.filename is not None:
                raise ExecError(role, argv[0], exc) from exc
            raise SyscallError.from_oserror(f"spawn {role}", exc) from exc
        child = Child(role, argv[0], proc)
        self.children.append(child)
        logger.debug("spawned %s pid=%d fds=%s", role, proc.pid, fdo.exec_fds())
        return child

    async def _spawn_producer(
        self, role: str, shell: str, command: str, write_fd: int
    ) -> Child:
        return await self._exec(role, (shell, "-c", command), producer_ops(write_fd))

    async def _spawn_comparator(
        self, job: Job, read_a: int, read_b: int, stdout_fd: int | None
    ) -> Child:
        return await self._exec(
            COMPARATOR,
            comparator_argv(job),
            comparator_ops(read_a, read_b),
            stdout=stdout_fd,
        )

    async def execute(self, job: Job, stdout_fd: int | None = None) -> Result:
        """Execute a job and return Result with the comparator-derived code.

        Args:
            job: The two commands and comparator settings.
            stdout_fd: File descriptor for the comparator's stdout (e.g.,
                write end of a capture pipe). Ownership passes to the executor.
        """
        if stdout_fd is not None:
            self.fds.append(OwnedFd(stdout_fd))
        try:
            # Children dup2 onto 0-4; nothing the parent allocates while
            # spawning may land there.
            for slot in range(COMPARATOR_SLOTS[-1] + 1):
                if reserve_slot(slot):
                    self.fds.append(OwnedFd(slot))

            read_a, write_a = self._pipe()
            read_b, write_b = self._pipe()
            self._advance(State.PIPES_ALLOCATED)

            await self._spawn_producer(PRODUCER_A, job.shell, job.cmd_a, write_a.fd)
            await self._spawn_producer(PRODUCER_B, job.shell, job.cmd_b, write_b.fd)
            self._advance(State.PRODUCERS_SPAWNED)

            comparator = await self._spawn_comparator(
                job, read_a.fd, read_b.fd, stdout_fd
            )
            self._advance(State.COMPARATOR_SPAWNED)

            # Children hold their own copies; each pipe now has exactly one
            # writer and one reader.
            for fd_entry in self.fds:
                fd_entry.close()

            self._advance(State.WAITING)
            await asyncio.gather(*(child.proc.wait() for child in self.children))

            statuses = {
                child.role: self._normalize_returncode(child.proc.returncode)
                for child in self.children
            }
            logger.debug("statuses %s", statuses)
            code = 0 if job.succeed_always else statuses[comparator.role]
            self._advance(State.DONE)
            return Result(code, statuses)
        finally:
            await _kill_and_reap(*(child.proc for child in self.children))
            for fd_entry in self.fds:
                fd_entry.close()  # idempotent

    @staticmethod
    def _normalize_returncode(code: int | None) -> int:
        """Convert returncode to shell-style: 128 + signal for killed processes."""
        if code is None:
            return 0
        if code < 0:
            return 128 + (-code)
        return code


async def run(job: Job) -> int:
    """Execute a job with the comparator writing to our stdout."""
    result = await Executor().execute(job)
    return result.code


async def capture(job: Job) -> Result:
    """Execute a job and capture the comparator's stdout into Result.stdout."""
    pipe = allocate_pipe()
    # Read concurrently with execution to avoid deadlock
    reader = asyncio.create_task(async_read(pipe.read))
    try:
        result = await Executor().execute(job, stdout_fd=pipe.write)
    finally:
        # execute() owns and always closes the write end, so the reader
        # reaches EOF and closes the read end itself.
        stdout = await reader
    result.stdout = stdout
    return result


@overload
async def out(job: Job, encoding: None) -> bytes: ...
@overload
async def out(job: Job, encoding: str = "utf-8") -> str: ...


async def out(job: Job, encoding: str | None = "utf-8") -> str | bytes:
    """Execute a job and return the comparator's stdout.

    Args:
        job: Job to execute.
        encoding: Decode stdout with this encoding. None for raw bytes.

    Exit status 1 means "differences found" and is not an error. Raises
    subprocess.CalledProcessError on any status above 1.
    """
    result = await capture(job)
    stdout = result.stdout if result.stdout is not None else b""
    if result.code > 1:
        argv = list(comparator_argv(job))
        raise subprocess.CalledProcessError(result.code, argv, stdout)
    if encoding is None:
        return stdout
    return stdout.decode(encoding)
