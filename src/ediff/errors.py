"""Exception types raised by ediff."""

from __future__ import annotations


class EdiffError(Exception):
    """Base class for ediff failures."""


class UsageError(EdiffError):
    """Too few command-line arguments."""


class SyscallError(EdiffError):
    """A pipe/dup/fcntl/spawn call failed.

    Carries the name of the failing operation so the message reads like
    err(3): ``"fcntl F_DUPFD: Too many open files"``.
    """

    def __init__(self, op: str, errno: int | None, strerror: str | None) -> None:
        self.op = op
        self.errno = errno
        self.strerror = strerror
        super().__init__(f"{op}: {strerror}")

    @classmethod
    def from_oserror(cls, op: str, exc: OSError) -> SyscallError:
        return cls(op, exc.errno, exc.strerror or str(exc))


class ExecError(EdiffError):
    """A child could not exec its target program (shell or comparison tool)."""

    def __init__(self, role: str, program: str, cause: OSError) -> None:
        self.role = role
        self.program = program
        self.cause = cause
        super().__init__(f"exec {program}: {cause.strerror or cause}")
