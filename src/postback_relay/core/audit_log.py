"""
Append-only audit log.

One timestamped line per fired event and per dropped postback:

    [2025-09-22 10:30:00] Fired[1/3]: clickid=abc***gh type=Purchase ...

Writing is best-effort: a missing directory or denied write is logged
via structlog and never reaches the caller.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol

import structlog
from aiofiles import open as aio_open

from .exceptions import LogSinkError

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogSink(Protocol):
    """Capability to append one complete line."""

    async def append(self, line: str) -> None:
        """
        Raises:
            LogSinkError: the line could not be written
        """
        ...


class FileLogSink:
    """
    File-backed LogSink.

    Each line is written with a single unbuffered write on a file opened
    in append mode, so lines from concurrent requests never interleave.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

        # Ensure log directory exists
        try:
            self._ensure_directory()
        except OSError as e:
            logger.warning("Error creating audit log directory", path=str(self.path.parent), error=str(e))

    def _ensure_directory(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    async def _write(self, data: bytes) -> None:
        async with aio_open(self.path, "ab", buffering=0) as f:
            await f.write(data)

    async def append(self, line: str) -> None:
        data = line.encode("utf-8")
        try:
            try:
                await self._write(data)
            except FileNotFoundError:
                # Directory removed since startup
                self._ensure_directory()
                await self._write(data)
        except OSError as e:
            raise LogSinkError(
                "Failed to append audit log line",
                details={"path": str(self.path), "error": str(e)},
            ) from e


class AuditLog:
    """Timestamps lines and forwards them to a sink, swallowing sink failures."""

    def __init__(self, sink: Optional[LogSink], enabled: bool = True) -> None:
        self.sink = sink
        self.enabled = enabled and sink is not None

    @staticmethod
    def format_line(line: str, now: Optional[datetime] = None) -> str:
        stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
        return f"[{stamp}] {line}\n"

    async def write(self, line: str) -> None:
        if not self.enabled or self.sink is None:
            return

        try:
            await self.sink.append(self.format_line(line))
        except LogSinkError as e:
            logger.warning(
                "Audit log write failed",
                error=str(e),
                details=e.details,
            )
