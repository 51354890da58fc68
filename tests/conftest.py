"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

from pathlib import Path
from typing import Any, Dict, Generator, List, Tuple, Union

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from postback_relay.config import (
    AuditLogSettings,
    DispatchSettings,
    MaskingSettings,
    RuleSettings,
    Settings,
)
from postback_relay.core.transport import TransportResponse
from postback_relay.main import create_app


class FakeTransport:
    """
    In-memory HttpGetter.

    Pops queued outcomes in call order; an Exception outcome is raised.
    Once the queue is empty every call answers 200 "OK".
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, float]] = []
        self.responses: List[Union[TransportResponse, Exception]] = []

    async def get(self, url: str, timeout_seconds: float) -> TransportResponse:
        self.calls.append((url, timeout_seconds))
        outcome = self.responses.pop(0) if self.responses else TransportResponse(status=200, body="OK")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]


class RecordingSink:
    """LogSink that keeps appended lines in memory."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    async def append(self, line: str) -> None:
        self.lines.append(line)


@pytest.fixture
def audit_log_dir(tmp_path: Path) -> Path:
    """Temporary audit log directory (not created up front)."""
    return tmp_path / "logs"


@pytest.fixture
def test_settings(audit_log_dir: Path) -> Settings:
    """Settings pointing at a fake tracker and a temporary audit log."""
    return Settings(
        log_level="DEBUG",
        dispatch=DispatchSettings(
            base_url="https://tracker.test/postback",
            timeout_seconds=2,
            user_agent="postback-relay-tests/1.0",
        ),
        rules=RuleSettings(
            value_threshold=1,
            low_value_marker_key="sub11",
            low_value_marker_value="low_value",
        ),
        masking=MaskingSettings(enabled=True, keep_left=3, keep_right=2, mask_char="*"),
        audit_log=AuditLogSettings(
            enabled=True,
            directory=audit_log_dir,
            filename="postbacks.log",
        ),
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def metrics_registry() -> CollectorRegistry:
    """Isolated Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def test_client(
    test_settings: Settings,
    fake_transport: FakeTransport,
    metrics_registry: CollectorRegistry,
) -> Generator[TestClient, None, None]:
    """FastAPI test client with test settings and the fake transport."""
    app = create_app(
        settings=test_settings,
        transport=fake_transport,
        metrics_registry=metrics_registry,
    )
    with TestClient(app) as client:
        yield client


@pytest.fixture
def purchase_postback() -> Dict[str, Any]:
    """Sample high-value purchase postback."""
    return {
        "clickid": "abcdefgh",
        "sum": "10",
        "type": "purchase",
        "sub12": "campaign-7",
    }


@pytest.fixture
def low_value_postback() -> Dict[str, Any]:
    """Sample postback below the value threshold."""
    return {
        "cid": "abcdefgh",
        "payout": "0,5",
    }
