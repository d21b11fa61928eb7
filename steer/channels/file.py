"""Append events to a local log file."""

import asyncio
from pathlib import Path
from typing import TextIO
from urllib.parse import unquote, urlsplit

from steer.channels.base import NotificationChannel
from steer.models import NotificationEvent


class FileChannel(NotificationChannel):
    """``file:///var/log/steer.log``: one line per event, flushed at once."""

    def __init__(self, uri, level, settings):
        super().__init__(uri, level, settings)
        parts = urlsplit(uri)
        raw_path = unquote(parts.netloc + parts.path)
        if not raw_path:
            raise ValueError(f"No path in file notification URI: {uri}")
        self.path = Path(raw_path)
        self._file: TextIO | None = None

    async def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("a")

    async def deliver(self, event: NotificationEvent) -> None:
        if self._file is None:
            await self.open()
        line = (
            f"{event.timestamp:%Y-%m-%d %H:%M:%S} [{event.level.name}] "
            f"[{event.component}] {event.message}\n"
        )
        await asyncio.to_thread(self._write, line)

    def _write(self, line: str) -> None:
        self._file.write(line)
        self._file.flush()

    async def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
