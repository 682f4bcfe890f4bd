"""Environment-derived configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_SHELL = "/bin/sh"
DEFAULT_DIFF = "diff"


def _privileged() -> bool:
    """True when running set-uid or set-gid."""
    return os.getuid() != os.geteuid() or os.getgid() != os.getegid()


def trusted_getenv(name: str, environ: Mapping[str, str] | None = None) -> str | None:
    """Like secure_getenv(3): ignore the environment when privileged."""
    if _privileged():
        return None
    env = os.environ if environ is None else environ
    return env.get(name) or None


def _flag(value: str | None) -> bool:
    return bool(value) and value != "0"


@dataclass(frozen=True)
class Config:
    """Settings read from the environment once, at startup.

    SHELL                 shell used for both commands (trusted lookup)
    EDIFF_DIFF            comparison tool program (trusted lookup)
    EDIFF_FD_DIR          directory of fd path aliases (trusted lookup)
    EDIFF_FD_DEBUG        list the comparator's fds instead of diffing
    EDIFF_ALWAYS_SUCCEED  exit 0 regardless of the comparator's status
    EDIFF_LOG_LEVEL       logging level name for the CLI
    """

    shell: str = DEFAULT_SHELL
    diff_program: str = DEFAULT_DIFF
    fd_dir: str | None = None
    debug_fds: bool = False
    always_succeed: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        env = os.environ if environ is None else environ
        return cls(
            shell=trusted_getenv("SHELL", env) or DEFAULT_SHELL,
            diff_program=trusted_getenv("EDIFF_DIFF", env) or DEFAULT_DIFF,
            fd_dir=trusted_getenv("EDIFF_FD_DIR", env),
            debug_fds=_flag(env.get("EDIFF_FD_DEBUG")),
            always_succeed=_flag(env.get("EDIFF_ALWAYS_SUCCEED")),
            log_level=(env.get("EDIFF_LOG_LEVEL") or "WARNING").upper(),
        )
