"""Command line entry point: ``ediff [diff args] 'command A' 'command B'``."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import Sequence

from ediff.config import Config
from ediff.errors import EdiffError, UsageError
from ediff.ir import Job
from ediff.runtime import run

USAGE = "usage: {prog} [diff args] 'shell command 1' 'shell command 2'"


def parse_args(args: Sequence[str]) -> tuple[tuple[str, ...], str, str]:
    """Split argv into (diff flags, command A, command B).

    The last two arguments are the commands; everything before them is
    passed to the comparison tool untouched.
    """
    if len(args) < 2:
        raise UsageError("expected two shell commands")
    return tuple(args[:-2]), args[-2], args[-1]


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level, stream=sys.stderr, format="%(name)s: %(levelname)s: %(message)s"
    )


def prog_name() -> str:
    """Program name for messages; "ediff" under python -m."""
    name = os.path.basename(sys.argv[0]) if sys.argv else ""
    if not name or name == "__main__.py":
        return "ediff"
    return name


def main(argv: Sequence[str] | None = None) -> int:
    prog = prog_name()
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        flags, cmd_a, cmd_b = parse_args(args)
    except UsageError:
        print(USAGE.format(prog=prog), file=sys.stderr)
        return 2

    config = Config.from_env()
    _configure_logging(config.log_level)
    job = Job.from_config(cmd_a, cmd_b, flags, config)
    try:
        return asyncio.run(run(job))
    except EdiffError as exc:
        print(f"{prog}: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        # asyncio.run cancelled the executor; its cleanup killed the children.
        return 130
