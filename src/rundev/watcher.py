"""Content snapshots of a single watched file.

``watch_file`` turns filesystem notifications into a stream of the file's
current content:

    - The current content is emitted as soon as the stream is iterated
    - Every notification re-reads the file
    - ``None`` stands for "missing or unreadable" (editors often save via
      delete + recreate, so this is a value, not an error)
    - Consecutive identical values are dropped

Notifications come from ``watchfiles.awatch`` on the file's parent
directory, filtered to the file name, so the file may disappear and come
back without the watch being lost.  The source is subscribed before the
first read and drained into a queue, so no change is missed while the
consumer is busy with the previous value.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Callable

from watchfiles import Change, awatch

logger = logging.getLogger(__name__)

ChangeSource = Callable[[Path], AsyncIterator[object]]

DEFAULT_DEBOUNCE_MS = 50

_SOURCE_DONE = object()


async def directory_changes(
    path: Path, *, debounce_ms: int = DEFAULT_DEBOUNCE_MS
) -> AsyncIterator[set[tuple[Change, str]]]:
    """Yield batches of filesystem changes that touch *path*."""
    name = path.name

    def _is_target(_change: Change, changed: str) -> bool:
        return Path(changed).name == name

    async for changes in awatch(
        path.parent,
        watch_filter=_is_target,
        recursive=False,
        debounce=debounce_ms,
    ):
        logger.debug("Changes for %s: %s", path, changes)
        yield changes


async def read_text_or_none(path: Path) -> str | None:
    """Return the UTF-8 content of *path*, or None if it cannot be read."""
    try:
        return await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


async def _forward(source: AsyncIterator[object], queue: asyncio.Queue[object]) -> None:
    try:
        async for changes in source:
            queue.put_nowait(changes)
    finally:
        queue.put_nowait(_SOURCE_DONE)


async def watch_file(
    path: Path,
    *,
    changes: ChangeSource | None = None,
    debounce_ms: int = DEFAULT_DEBOUNCE_MS,
) -> AsyncIterator[str | None]:
    """Yield the content of *path* now and after every change to it.

    Args:
        path: File to watch.
        changes: Notification source; defaults to :func:`directory_changes`.
        debounce_ms: Debounce window for the default notification source.

    Yields:
        The file's text, or None while it is missing or unreadable.  Two
        consecutive values are never equal.
    """
    if changes is None:
        source = directory_changes(path, debounce_ms=debounce_ms)
    else:
        source = changes(path)

    queue: asyncio.Queue[object] = asyncio.Queue()
    pump = asyncio.create_task(_forward(source, queue), name=f"watch-{path.name}")
    try:
        # let the source subscribe before the initial read
        await asyncio.sleep(0)
        last = await read_text_or_none(path)
        yield last

        while True:
            item = await queue.get()
            if item is _SOURCE_DONE:
                pump.result()
                return
            content = await read_text_or_none(path)
            if content == last:
                continue
            last = content
            yield content
    finally:
        pump.cancel()
        await asyncio.wait([pump])


__all__ = [
    "ChangeSource",
    "DEFAULT_DEBOUNCE_MS",
    "directory_changes",
    "read_text_or_none",
    "watch_file",
]
