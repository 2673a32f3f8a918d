"""Root conftest.py for omega2-io.

Provides shared pytest configuration and fixtures: a recording process runner
standing in for the Omega2 command-line tools, and a board wired to it.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Sequence

import pytest

# Make the src layout importable without an install
PROJECT_ROOT = Path(__file__).parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from omega2_io.board import Board  # noqa: E402
from omega2_io.config import BoardConfig  # noqa: E402
from omega2_io.errors import ProcessFailureError  # noqa: E402
from omega2_io.process import ProcessResult  # noqa: E402

if TYPE_CHECKING:
    from _pytest.config import Config


def pytest_configure(config: Config) -> None:
    """Register custom markers.

    Args:
        config: pytest configuration object.
    """
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring real Omega2 hardware",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


class RecordingRunner:
    """Process runner that records command lines and replays canned output.

    Responses are registered per full command line. When several outputs are
    queued for one command line they are returned in order and the last one
    repeats.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.sync_calls: list[str] = []
        self._outputs: dict[str, list[bytes]] = {}
        self._failures: dict[str, int] = {}

    def respond(self, cmdline: str, *outputs: str | bytes) -> None:
        """Queue stdout for ``cmdline``."""
        self._outputs[cmdline] = [o.encode() if isinstance(o, str) else o for o in outputs]

    def fail(self, cmdline: str, exit_code: int = 1) -> None:
        """Make ``cmdline`` exit with ``exit_code``."""
        self._failures[cmdline] = exit_code

    def succeed(self, cmdline: str) -> None:
        """Stop failing ``cmdline``."""
        self._failures.pop(cmdline, None)

    def count(self, cmdline: str) -> int:
        """Return how many times ``cmdline`` was run."""
        return self.calls.count(cmdline)

    def _result(self, command: str, args: Sequence[str]) -> ProcessResult:
        argv = tuple(str(a) for a in args)
        cmdline = " ".join([command, *argv])
        self.calls.append(cmdline)
        if cmdline in self._failures:
            raise ProcessFailureError(
                command, argv, self._failures[cmdline], b"simulated failure"
            )
        queue = self._outputs.get(cmdline)
        stdout = b""
        if queue:
            stdout = queue.pop(0) if len(queue) > 1 else queue[0]
        return ProcessResult(command, argv, stdout=stdout)

    async def run(self, command: str, args: Sequence[str]) -> ProcessResult:
        return self._result(command, args)

    def run_sync(self, command: str, args: Sequence[str]) -> ProcessResult:
        result = self._result(command, args)
        self.sync_calls.append(self.calls[-1])
        return result


@pytest.fixture
def runner() -> RecordingRunner:
    """Create a recording runner."""
    return RecordingRunner()


@pytest.fixture
def board_config() -> BoardConfig:
    """Board configuration with a short poll interval for fast tests."""
    return BoardConfig(digital_poll_interval=0.01)


@pytest.fixture
async def board(runner: RecordingRunner, board_config: BoardConfig) -> AsyncIterator[Board]:
    """Create a board wired to the recording runner."""
    instance = Board(board_config, runner=runner)
    yield instance
    await instance.close()


def pytest_report_header(config: Config) -> list[str]:
    """Add a header line to the pytest report.

    Args:
        config: pytest configuration object.

    Returns:
        List of header lines.
    """
    return ["omega2-io test suite"]
