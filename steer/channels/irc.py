"""Send events to an IRC channel."""

import asyncio
import logging
from urllib.parse import parse_qs, unquote, urlsplit

from steer.channels.base import NotificationChannel
from steer.models import NotificationEvent

logger = logging.getLogger(__name__)


class IRCChannel(NotificationChannel):
    """``irc://[nick@]host[:port]/channel[?password=secret]``.

    Connects when the run starts, joins the channel and sends each event as a
    PRIVMSG. Multi-line messages are sent one line at a time.
    """

    def __init__(self, uri, level, settings):
        super().__init__(uri, level, settings)
        parts = urlsplit(uri)
        if not parts.hostname:
            raise ValueError(f"No server in IRC notification URI: {uri}")
        channel = unquote(parts.path.lstrip("/") or parts.fragment)
        if not channel:
            raise ValueError(f"No channel in IRC notification URI: {uri}")

        self.host = parts.hostname
        self.port = parts.port or 6667
        self.nick = unquote(parts.username) if parts.username else settings.irc_nick
        self.channel = channel if channel.startswith(("#", "&")) else f"#{channel}"
        self.password = parse_qs(parts.query).get("password", [None])[0]
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def _send(self, line: str) -> None:
        self._writer.write(f"{line}\r\n".encode("utf-8", errors="replace"))
        await self._writer.drain()

    async def open(self) -> None:
        logger.info("Connecting to IRC %s:%d as %s", self.host, self.port, self.nick)
        self._reader, self._writer = await asyncio.open_connection(self.host, self.port)
        if self.password:
            await self._send(f"PASS {self.password}")
        await self._send(f"NICK {self.nick}")
        await self._send(f"USER {self.nick} 0 * :steer notifications")
        await self._send(f"JOIN {self.channel}")

    async def deliver(self, event: NotificationEvent) -> None:
        if self._writer is None:
            await self.open()
        for line in event.text().splitlines() or [""]:
            await self._send(f"PRIVMSG {self.channel} :[{event.level.name}] {line}")

    async def close(self) -> None:
        if self._writer is None:
            return
        try:
            await self._send("QUIT :steer run finished")
        finally:
            self._writer.close()
            await self._writer.wait_closed()
            self._reader = self._writer = None
