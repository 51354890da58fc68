"""
Tests for the audit log sink.

Tests timestamp formatting, append-only file writes and best-effort
behaviour when the sink fails.
"""

import re
from datetime import datetime
from pathlib import Path

import pytest

from postback_relay.core.audit_log import AuditLog, FileLogSink
from postback_relay.core.exceptions import LogSinkError

TIMESTAMPED_LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] ")


class FailingSink:
    async def append(self, line: str) -> None:
        raise LogSinkError("disk on fire")


class TestFileLogSink:
    """Test the file-backed sink."""

    @pytest.mark.asyncio
    async def test_creates_directory_and_appends(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "audit.log"
        sink = FileLogSink(path)

        await sink.append("first\n")
        await sink.append("second\n")

        assert path.read_text(encoding="utf-8") == "first\nsecond\n"

    def test_directory_created_at_construction(self, tmp_path: Path) -> None:
        FileLogSink(tmp_path / "logs" / "audit.log")
        assert (tmp_path / "logs").is_dir()

    @pytest.mark.asyncio
    async def test_directory_recreated_when_removed(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "audit.log"
        sink = FileLogSink(path)
        (tmp_path / "logs").rmdir()

        await sink.append("line\n")

        assert path.read_text(encoding="utf-8") == "line\n"

    @pytest.mark.asyncio
    async def test_existing_content_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "audit.log"
        path.write_text("old\n", encoding="utf-8")

        await FileLogSink(path).append("new\n")

        assert path.read_text(encoding="utf-8") == "old\nnew\n"

    @pytest.mark.asyncio
    async def test_unwritable_location_raises_sink_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(LogSinkError):
            await FileLogSink(blocker / "audit.log").append("line\n")


class TestAuditLog:
    """Test timestamping and best-effort writes."""

    def test_format_line(self) -> None:
        line = AuditLog.format_line("hello", now=datetime(2025, 9, 22, 10, 30, 0))
        assert line == "[2025-09-22 10:30:00] hello\n"

    @pytest.mark.asyncio
    async def test_write_prefixes_timestamp(self, recording_sink) -> None:
        await AuditLog(recording_sink).write("Fired[1/1]: x")

        assert len(recording_sink.lines) == 1
        assert TIMESTAMPED_LINE.match(recording_sink.lines[0])
        assert recording_sink.lines[0].endswith("Fired[1/1]: x\n")

    @pytest.mark.asyncio
    async def test_disabled_writes_nothing(self, recording_sink) -> None:
        await AuditLog(recording_sink, enabled=False).write("ignored")
        assert recording_sink.lines == []

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self) -> None:
        await AuditLog(FailingSink()).write("still fine")

    @pytest.mark.asyncio
    async def test_file_sink_failure_is_swallowed(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        await AuditLog(FileLogSink(blocker / "audit.log")).write("still fine")
