from __future__ import annotations

import logging
import socket
import sys
from pathlib import Path
from textwrap import dedent
from typing import Iterator

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from flightaxis.configuration import CONFIG_ENV_VAR  # noqa: E402
from flightaxis.transport import Endpoint  # noqa: E402

from tests.helpers.host import FakeFlightAxisHost  # noqa: E402


def write_pyproject(directory: Path, contents: str) -> Path:
    """Persist a ``pyproject.toml`` under ``directory`` and return its path."""

    payload = dedent(contents).lstrip()
    target = directory / "pyproject.toml"
    target.write_text(payload, encoding="utf8")
    return target


@pytest.fixture
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run the test from an empty directory with no configuration override."""

    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def listening_endpoint() -> Iterator[Endpoint]:
    """Yield an endpoint backed by a listening socket that never accepts.

    The kernel completes handshakes into the backlog, which is enough for the
    pool to hold connected sockets.
    """

    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(64)
    host, port = server.getsockname()
    try:
        yield Endpoint(host, port)
    finally:
        server.close()


@pytest.fixture
def refused_endpoint() -> Endpoint:
    """Return an endpoint on a port nothing listens on."""

    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    host, port = probe.getsockname()
    probe.close()
    return Endpoint(host, port)


@pytest.fixture
def fake_host() -> Iterator[FakeFlightAxisHost]:
    host = FakeFlightAxisHost()
    host.start()
    try:
        yield host
    finally:
        host.stop()


@pytest.fixture
def restore_flightaxis_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("flightaxis")
    handlers = list(logger.handlers)
    level = logger.level
    try:
        yield logger
    finally:
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
