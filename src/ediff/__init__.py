"""ediff: diff the output of two shell commands without temporary files."""

from ediff.config import Config
from ediff.errors import EdiffError, ExecError, SyscallError, UsageError
from ediff.fdops import COMPARATOR_SLOTS, MIN_ALIAS_FD, STDERR, STDIN, STDOUT
from ediff.ir import Job, job
from ediff.runtime import Executor, Result, capture, out, run

__all__ = [
    "COMPARATOR_SLOTS",
    "MIN_ALIAS_FD",
    "STDERR",
    "STDIN",
    "STDOUT",
    "Config",
    "EdiffError",
    "ExecError",
    "Executor",
    "Result",
    "SyscallError",
    "UsageError",
    "Job",
    "capture",
    "job",
    "out",
    "run",
]
