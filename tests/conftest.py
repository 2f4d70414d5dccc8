"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pytest

from netwatch.capture.base import RawConnection
from netwatch.config import NetWatchConfig
from netwatch.errors import SourceError


class FakeSource:
    """Connection source that replays scripted answers.

    Each entry is a list of RawConnection (returned) or an exception
    (raised). The last entry repeats once the script runs out.
    """

    def __init__(self, script: Iterable[list[RawConnection] | BaseException] = ()) -> None:
        self.script = list(script)
        self.calls = 0

    def fetch(self) -> list[RawConnection]:
        self.calls += 1
        if not self.script:
            return []
        index = min(self.calls - 1, len(self.script) - 1)
        answer = self.script[index]
        if isinstance(answer, BaseException):
            raise answer
        return list(answer)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_raw(
    remote_addr: str = "93.184.216.34",
    remote_port: int = 443,
    pid: int = 100,
    process_name: str = "firefox",
    state: str = "ESTABLISHED",
    protocol: str = "TCP",
    local_addr: str = "192.168.1.105",
    local_port: int = 54321,
) -> RawConnection:
    return RawConnection(
        protocol=protocol,
        local_addr=local_addr,
        local_port=local_port,
        remote_addr=remote_addr,
        remote_port=remote_port,
        state=state,
        pid=pid,
        process_name=process_name,
    )


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def rules_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "rules.yaml"


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path: Path) -> NetWatchConfig:
    return NetWatchConfig(
        data_dir=tmp_path / "data",
        config_dir=tmp_path / "config",
        poll_interval=0.01,
        poll_timeout=1.0,
    )


@pytest.fixture
def sample_raws() -> list[RawConnection]:
    return [
        make_raw("172.217.14.99", 443, pid=12456, process_name="chrome.exe"),
        make_raw("151.101.1.69", 443, pid=12456, process_name="chrome.exe", local_port=54322),
        make_raw(
            "0.0.0.0", 0, pid=15200, process_name="node.exe", state="LISTENING",
            local_addr="127.0.0.1", local_port=3000,
        ),
        make_raw("91.134.125.21", 4444, pid=6677, process_name="suspicious.exe", local_port=55100),
    ]


@pytest.fixture
def failing_source() -> FakeSource:
    return FakeSource([SourceError("netstat exploded")])
