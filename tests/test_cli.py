from __future__ import annotations

import signal
import threading
from pathlib import Path

import pytest

from flightaxis.cli import CliError, run_cli, run_session
from flightaxis.cli import app as cli_app
from flightaxis.cli.app import THROTTLE_STEP, _restore_signal_handlers, install_signal_handlers
from flightaxis.cli.parser import build_parser
from flightaxis.protocol import ControlInput
from flightaxis.transport import Endpoint

from tests.conftest import write_pyproject


class _RecordingController:
    def __init__(self, *, stop_after: int | None = None, stop_event=None, succeed: bool = True):
        self.pool = type("Pool", (), {"endpoint": Endpoint("127.0.0.1", 18083)})()
        self.controls: list[ControlInput] = []
        self._stop_after = stop_after
        self._stop_event = stop_event
        self._succeed = succeed

    def update(self, control: ControlInput) -> bool:
        self.controls.append(control)
        if self._stop_after is not None and len(self.controls) >= self._stop_after:
            self._stop_event.set()
        return self._succeed


def test_parser_accepts_optional_host_and_port() -> None:
    parser = build_parser()

    assert vars(parser.parse_args([])) == {"host": None, "port": None}
    assert vars(parser.parse_args(["192.168.1.20"])) == {"host": "192.168.1.20", "port": None}
    assert vars(parser.parse_args(["sim.local", "19000"])) == {"host": "sim.local", "port": 19000}


@pytest.mark.parametrize("port", ["abc", "0", "65536"])
def test_parser_rejects_invalid_port(port: str) -> None:
    with pytest.raises(CliError) as excinfo:
        build_parser().parse_args(["127.0.0.1", port])

    assert excinfo.value.category == "usage"
    assert excinfo.value.status_code == 2
    assert "port" in str(excinfo.value)


def test_run_cli_reports_usage_errors(
    isolated_config: Path,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level("ERROR", logger="flightaxis.cli")

    status = run_cli(["127.0.0.1", "18083", "extra"])

    assert status == 2
    err = capsys.readouterr().err
    assert err.startswith("usage: flightaxis")
    assert "flightaxis: error: unrecognized arguments: extra" in err
    records = [record for record in caplog.records if getattr(record, "event", None) == "cli.error"]
    assert [record.category for record in records] == ["usage"]


def test_run_session_ramps_throttle_to_full() -> None:
    controller = _RecordingController()

    iterations = run_session(controller, threading.Event(), max_updates=40)  # type: ignore[arg-type]

    throttles = [control.throttle for control in controller.controls]
    assert iterations == 40
    assert throttles[0] == 0.0
    assert throttles[1] == pytest.approx(THROTTLE_STEP)
    assert throttles == sorted(throttles)
    assert throttles[-1] == 1.0
    assert all(control.aileron == 0.5 for control in controller.controls)


def test_run_session_stops_when_event_is_set() -> None:
    stop_event = threading.Event()
    controller = _RecordingController(stop_after=5, stop_event=stop_event)

    assert run_session(controller, stop_event) == 5  # type: ignore[arg-type]

    stop_event.clear()
    stop_event.set()
    assert run_session(controller, stop_event) == 0  # type: ignore[arg-type]


def test_run_session_keeps_polling_through_failures() -> None:
    controller = _RecordingController(succeed=False)

    assert run_session(controller, threading.Event(), max_updates=3) == 3  # type: ignore[arg-type]


def test_signal_handlers_set_stop_event_and_are_restored() -> None:
    original = signal.getsignal(signal.SIGTERM)
    stop_event = threading.Event()

    previous = install_signal_handlers(stop_event)
    try:
        handler = signal.getsignal(signal.SIGTERM)
        assert callable(handler)
        handler(signal.SIGTERM, None)
        assert stop_event.is_set()
    finally:
        _restore_signal_handlers(previous)

    assert signal.getsignal(signal.SIGTERM) == original


def test_run_cli_drives_session_against_fake_host(
    fake_host,
    isolated_config: Path,
    monkeypatch: pytest.MonkeyPatch,
    restore_flightaxis_logger,
) -> None:
    seen = {}

    def bounded_session(controller, stop_event, **kwargs):
        seen["controller"] = controller
        return run_session(controller, stop_event, max_updates=3, **kwargs)

    monkeypatch.setattr(cli_app, "run_session", bounded_session)
    endpoint = fake_host.endpoint

    status = run_cli([endpoint.host, str(endpoint.port)])

    assert status == 0
    assert fake_host.actions() == [
        "InjectUAVControllerInterface",
        "ExchangeData",
        "ExchangeData",
        "ExchangeData",
    ]
    controller = seen["controller"]
    assert controller.state.airspeed_mps == 12.5
    assert not controller.pool.running


def test_run_cli_reports_configuration_errors(
    isolated_config: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_pyproject(isolated_config, "[tool.flightaxis]\nretries = 3\n")

    status = run_cli([])

    assert status == 3
    assert "retries" in capsys.readouterr().err


def test_run_cli_reports_invalid_logging_configuration(
    isolated_config: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_pyproject(isolated_config, '[tool.flightaxis.logging]\nformat = "xml"\n')

    assert run_cli([]) == 3
    assert "Invalid logging configuration" in capsys.readouterr().err


def test_cli_error_maps_categories_to_status_codes() -> None:
    assert CliError("boom").status_code == 1
    assert CliError("bad", category="usage").status_code == 2
    error = CliError("bad config", category="config", context={"path": Path("/tmp/x")})
    assert error.status_code == 3
    assert error.payload.context == {"path": "/tmp/x"}
    with pytest.raises(ValueError):
        CliError("odd", category="io")
