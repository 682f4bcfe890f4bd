"""IR: a frozen comparison job with chainable builder methods."""

from __future__ import annotations

from dataclasses import dataclass

from ediff.config import DEFAULT_DIFF, DEFAULT_SHELL, Config
from ediff.paths import default_fd_dir


class _Unset:
    """Sentinel for unset fields in _replace."""


UNSET = _Unset()


@dataclass(frozen=True)
class Job:
    """Compare the stdout of two shell commands.

    cmd_a/cmd_b are shell command strings, run as ``shell -c cmd``. They
    also serve as the labels the comparison tool prints.
    """

    cmd_a: str
    cmd_b: str
    flags: tuple[str, ...] = ()
    shell: str = DEFAULT_SHELL
    diff_program: str = DEFAULT_DIFF
    fd_dir: str | None = None
    debug: bool = False
    succeed_always: bool = False

    def _replace(
        self,
        *,
        flags: tuple[str, ...] | _Unset = UNSET,
        shell: str | _Unset = UNSET,
        diff_program: str | _Unset = UNSET,
        fd_dir: str | None | _Unset = UNSET,
        debug: bool | _Unset = UNSET,
        succeed_always: bool | _Unset = UNSET,
    ) -> Job:
        """Return a copy with specified fields replaced."""
        return Job(
            cmd_a=self.cmd_a,
            cmd_b=self.cmd_b,
            flags=self.flags if isinstance(flags, _Unset) else flags,
            shell=self.shell if isinstance(shell, _Unset) else shell,
            diff_program=(
                self.diff_program
                if isinstance(diff_program, _Unset)
                else diff_program
            ),
            fd_dir=self.fd_dir if isinstance(fd_dir, _Unset) else fd_dir,
            debug=self.debug if isinstance(debug, _Unset) else debug,
            succeed_always=(
                self.succeed_always
                if isinstance(succeed_always, _Unset)
                else succeed_always
            ),
        )

    @classmethod
    def from_config(
        cls, cmd_a: str, cmd_b: str, flags: tuple[str, ...], config: Config
    ) -> Job:
        return cls(
            cmd_a=cmd_a,
            cmd_b=cmd_b,
            flags=flags,
            shell=config.shell,
            diff_program=config.diff_program,
            fd_dir=config.fd_dir,
            debug=config.debug_fds,
            succeed_always=config.always_succeed,
        )

    def flag(self, *flags: str) -> Job:
        """Append comparison-tool flags. Any flag replaces the default -u."""
        return self._replace(flags=(*self.flags, *(str(f) for f in flags)))

    def using_shell(self, shell: str) -> Job:
        return self._replace(shell=shell)

    def using_diff(self, program: str) -> Job:
        return self._replace(diff_program=program)

    def with_fd_dir(self, directory: str) -> Job:
        """Override the directory the path aliases live in."""
        return self._replace(fd_dir=directory)

    def resolved_fd_dir(self) -> str:
        """The configured fd directory, or the platform default."""
        return self.fd_dir if self.fd_dir is not None else default_fd_dir()

    def debug_fds(self) -> Job:
        """Run ``ls -al <fd dir>`` in place of the comparison tool."""
        return self._replace(debug=True)

    def always_succeed(self) -> Job:
        """Report 0 regardless of the comparator's exit status."""
        return self._replace(succeed_always=True)

    async def run(self) -> int:
        """Execute and return exit code."""
        from ediff import runtime

        return await runtime.run(self)

    async def out(self, encoding: str | None = "utf-8") -> str | bytes:
        """Execute and return the comparator's stdout."""
        from ediff import runtime

        return await runtime.out(self, encoding)


def job(cmd_a: str, cmd_b: str, *flags: str) -> Job:
    """Create a job comparing two shell commands."""
    return Job(str(cmd_a), str(cmd_b), tuple(str(f) for f in flags))
