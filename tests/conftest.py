"""Test fixtures and fake collaborators for fmdxctrl tests."""

import asyncio
import os
from collections.abc import Callable, Generator, Sequence
from uuid import uuid4

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtCore import QCoreApplication  # noqa: E402

from fmdxctrl.api.interfaces import (  # noqa: E402
    ClosedHandler,
    ControlConnection,
    ErrorHandler,
    ScanChannel,
    StateHandler,
    TunerService,
)
from fmdxctrl.audio.pipeline import AudioPipeline, PlayingListener  # noqa: E402
from fmdxctrl.audio.profile import BufferProfile  # noqa: E402
from fmdxctrl.core.config import ConfigManager  # noqa: E402
from fmdxctrl.core.session import SessionOrchestrator  # noqa: E402
from fmdxctrl.core.state import StateStore  # noqa: E402
from fmdxctrl.models.spectrum import SpectrumPoint  # noqa: E402
from fmdxctrl.models.tuner import RdsText, TunerInfo, TunerState  # noqa: E402


class FakeControlConnection(ControlConnection):
    """Control connection recording sent commands."""

    def __init__(
        self,
        on_state: StateHandler,
        on_closed: ClosedHandler,
        on_error: ErrorHandler,
    ) -> None:
        self.on_state = on_state
        self.on_closed = on_closed
        self.on_error = on_error
        self.sent: list[str] = []
        self.closed = False
        self.close_calls = 0

    async def send(self, command: str) -> None:
        """Record a command."""
        self.sent.append(command)

    def close(self) -> None:
        """Close once, notifying the closed handler like a real socket."""
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        self.on_closed()

    def push(self, state: TunerState) -> None:
        """Simulate a state push from the server."""
        self.on_state(state)


class FakeScanChannel(ScanChannel):
    """Scan channel counting triggers."""

    def __init__(self, on_error: ErrorHandler) -> None:
        self.on_error = on_error
        self.triggers = 0
        self.closed = False

    async def trigger_scan(self) -> None:
        """Count a scan trigger."""
        self.triggers += 1

    def close(self) -> None:
        """Mark closed."""
        self.closed = True


class FakeTunerService(TunerService):
    """Tuner service with scripted responses.

    Attributes:
        info: Returned by fetch_info, or raised if an exception.
        info_gate: If set, fetch_info waits on it before answering.
        spectrum_results: Returned by successive fetch_spectrum calls; the
            last entry repeats. Exceptions are raised.
    """

    def __init__(self) -> None:
        self.info: TunerInfo | Exception = TunerInfo(
            tuner_name="Test Tuner",
            tuner_description="Rooftop dipole",
            antenna_names=("Ant A", "Ant B", "Ant C"),
            can_switch_antenna=True,
        )
        self.info_gate: asyncio.Event | None = None
        self.open_error: Exception | None = None
        self.spectrum_results: list[Sequence[SpectrumPoint] | Exception] = [[]]
        self.spectrum_calls = 0
        self.info_calls: list[tuple[str, str]] = []
        self.controls: list[FakeControlConnection] = []
        self.scans: list[FakeScanChannel] = []

    @property
    def control(self) -> FakeControlConnection:
        """Return the most recently opened control connection."""
        return self.controls[-1]

    @property
    def scan(self) -> FakeScanChannel:
        """Return the most recently opened scan channel."""
        return self.scans[-1]

    async def fetch_info(self, endpoint: str, client_identity: str) -> TunerInfo:
        self.info_calls.append((endpoint, client_identity))
        if self.info_gate is not None:
            await self.info_gate.wait()
        if isinstance(self.info, Exception):
            raise self.info
        return self.info

    def open_control(
        self,
        endpoint: str,
        client_identity: str,
        on_state: StateHandler,
        on_closed: ClosedHandler,
        on_error: ErrorHandler,
    ) -> FakeControlConnection:
        if self.open_error is not None:
            raise self.open_error
        control = FakeControlConnection(on_state, on_closed, on_error)
        self.controls.append(control)
        return control

    def open_scan_channel(
        self,
        endpoint: str,
        client_identity: str,
        on_error: ErrorHandler,
    ) -> FakeScanChannel:
        channel = FakeScanChannel(on_error)
        self.scans.append(channel)
        return channel

    async def fetch_spectrum(
        self,
        endpoint: str,
        client_identity: str,
    ) -> Sequence[SpectrumPoint]:
        index = min(self.spectrum_calls, len(self.spectrum_results) - 1)
        self.spectrum_calls += 1
        result = self.spectrum_results[index]
        if isinstance(result, Exception):
            raise result
        return result


class FakePipeline(AudioPipeline):
    """In-memory audio pipeline recording every call."""

    def __init__(self, profile: BufferProfile) -> None:
        self._profile = profile
        self._playing = False
        self._play_when_ready = False
        self._sources: tuple[str, ...] = ()
        self._index = 0
        self._position_ms = 0
        self._listener: PlayingListener | None = None
        self.calls: list[str] = []
        self.released = False
        self.fail_prepare = False

    @property
    def profile(self) -> BufferProfile:
        return self._profile

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def play_when_ready(self) -> bool:
        return self._play_when_ready

    @property
    def sources(self) -> tuple[str, ...]:
        return self._sources

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def position_ms(self) -> int:
        return self._position_ms

    def seek(self, position_ms: int) -> None:
        """Simulate playback progress."""
        self._position_ms = position_ms

    def set_source(self, uri: str) -> None:
        self.calls.append(f"set_source:{uri}")
        self._sources = (uri,)
        self._index = 0
        self._position_ms = 0

    def set_sources(self, uris: Sequence[str], index: int, position_ms: int) -> None:
        self.calls.append("set_sources")
        self._sources = tuple(uris)
        self._index = index
        self._position_ms = position_ms

    def set_play_when_ready(self, play: bool) -> None:
        self._play_when_ready = play

    def set_playing_listener(self, listener: PlayingListener | None) -> None:
        self._listener = listener

    def prepare(self) -> None:
        self.calls.append("prepare")
        if self.fail_prepare:
            raise RuntimeError("decoder unavailable")

    def play(self) -> None:
        self.calls.append("play")
        self._play_when_ready = True
        self._set_playing(True)

    def pause(self) -> None:
        self.calls.append("pause")
        self._play_when_ready = False
        self._set_playing(False)

    def stop(self) -> None:
        self.calls.append("stop")
        self._play_when_ready = False
        self._set_playing(False)

    def clear(self) -> None:
        self.calls.append("clear")
        self._sources = ()
        self._index = 0
        self._position_ms = 0

    def release(self) -> None:
        self.calls.append("release")
        self.released = True

    def _set_playing(self, playing: bool) -> None:
        changed = playing != self._playing
        self._playing = playing
        if changed and self._listener:
            self._listener(playing)


class PipelineFactory:
    """Pipeline factory keeping every pipeline it builds."""

    def __init__(self) -> None:
        self.built: list[FakePipeline] = []
        self.fail_build = False
        self.fail_prepare = False

    @property
    def current(self) -> FakePipeline:
        """Return the most recently built pipeline."""
        return self.built[-1]

    def __call__(self, profile: BufferProfile) -> FakePipeline:
        if self.fail_build:
            raise RuntimeError("no audio device")
        pipeline = FakePipeline(profile)
        pipeline.fail_prepare = self.fail_prepare
        self.built.append(pipeline)
        return pipeline


def _build_tuner_state(freq_khz: int = 98_100, **overrides: object) -> TunerState:
    """Build a TunerState with RDS text filled in."""
    values: dict[str, object] = {
        "freq_khz": freq_khz,
        "signal_dbf": 42.5,
        "ps": RdsText("RADIO 1 ", (0,) * 8),
        "rt0": RdsText("Now playing: something", (0,) * 22),
        "rt1": RdsText("Traffic at 5", (1,) * 12),
        "pi": "D3C3",
        "pty": 10,
        "antenna_index": 0,
        "users": 2,
    }
    values.update(overrides)
    return TunerState(**values)  # type: ignore[arg-type]


@pytest.fixture
def make_tuner_state() -> Callable[..., TunerState]:
    """Return a builder for TunerState pushes with RDS text filled in."""
    return _build_tuner_state


@pytest.fixture
def qapp() -> QCoreApplication:
    """Create a Qt application for testing."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def config() -> Generator[ConfigManager, None, None]:
    """Return a ConfigManager backed by a throwaway QSettings scope."""
    # Unique organization/app to avoid test interference
    manager = ConfigManager("FMDX-CTRL-Test", f"Test-{uuid4().hex}")
    manager.clear()
    yield manager
    manager.clear()


@pytest.fixture
def store() -> StateStore:
    """Return a fresh StateStore."""
    return StateStore()


@pytest.fixture
def service() -> FakeTunerService:
    """Return a scripted tuner service."""
    return FakeTunerService()


@pytest.fixture
def pipelines() -> PipelineFactory:
    """Return a recording pipeline factory."""
    return PipelineFactory()


@pytest.fixture
def orchestrator(
    service: FakeTunerService,
    config: ConfigManager,
    store: StateStore,
    pipelines: PipelineFactory,
) -> SessionOrchestrator:
    """Return an orchestrator with fast scan timings."""
    return SessionOrchestrator(
        service,
        config,
        store,
        pipelines,
        scan_poll_interval=0.01,
        scan_timeout=0.2,
    )


@pytest.fixture
def wait_until() -> Callable[..., object]:
    """Return a coroutine function polling a predicate until it holds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.001)

    return _wait_until
