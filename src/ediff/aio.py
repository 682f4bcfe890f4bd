"""Async IO utilities for non-blocking pipe operations."""

from __future__ import annotations

import asyncio
import contextlib
import os


def close_fd(fd: int) -> None:
    """Close fd, suppressing errors if already closed."""
    with contextlib.suppress(OSError):
        os.close(fd)


async def wait_readable(fd: int) -> None:
    """Suspend until fd is readable.

    Registers fd with the event loop's reader callback. When data arrives
    (or the writer closes), the callback fires and completes the future,
    resuming this coroutine.
    """
    loop = asyncio.get_running_loop()
    fut: asyncio.Future[None] = loop.create_future()
    loop.add_reader(fd, fut.set_result, None)
    try:
        await fut
    finally:
        loop.remove_reader(fd)


async def async_read(fd: int) -> bytes:
    """Read all data from fd asynchronously, then close.

    Reads in 64K chunks, yielding to the event loop when no data is available.
    Closes the fd when EOF is reached.
    """
    os.set_blocking(fd, False)
    chunks: list[bytes] = []
    try:
        while True:
            try:
                chunk = os.read(fd, 65536)
                if not chunk:
                    break
                chunks.append(chunk)
            except BlockingIOError:
                await wait_readable(fd)
    finally:
        close_fd(fd)
    return b"".join(chunks)
