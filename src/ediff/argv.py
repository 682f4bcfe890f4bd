"""Argument vector for the comparison tool."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

DEFAULT_FLAG = "-u"
LABEL_FLAG = "--label"


class ArgList:
    """Append-only argument list. Every element is an owned str copy."""

    def __init__(self, program: str) -> None:
        self._args: list[str] = []
        self.add(program)

    def add(self, arg: str) -> None:
        self._args.append(str(arg))

    def extend(self, args: Iterable[str]) -> None:
        for arg in args:
            self.add(arg)

    def __len__(self) -> int:
        return len(self._args)

    def __iter__(self) -> Iterator[str]:
        return iter(self._args)

    def argv(self) -> tuple[str, ...]:
        """Snapshot suitable for exec."""
        return tuple(self._args)


def build_diff_argv(
    program: str,
    flags: Sequence[str],
    labels: tuple[str, str],
    paths: tuple[str, str],
) -> tuple[str, ...]:
    """Build ``program [flags | -u] --label A pathA --label B pathB``.

    Caller flags are passed through verbatim and in order, with no
    validation. With no flags, ``-u`` requests unified output.
    """
    args = ArgList(program)
    if flags:
        args.extend(flags)
    else:
        args.add(DEFAULT_FLAG)
    for label, path in zip(labels, paths, strict=True):
        args.extend((LABEL_FLAG, label, path))
    return args.argv()
