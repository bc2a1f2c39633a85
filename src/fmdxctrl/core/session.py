"""Tuner session orchestration.

The SessionOrchestrator owns the connection to one tuner server: it
validates and normalizes the address, opens the control and scan channels,
relays user intents as control commands, applies state pushed by the
server, runs the spectrum scan workflow and commands the audio pipeline.

All methods run on a single asyncio event loop (see SessionWorker). Every
write to the session state goes through the StateStore, and work that
outlives a call is tagged with a session generation so results from a
previous session are dropped instead of overwriting the current one.
"""

import asyncio
import logging
import math
from collections.abc import Coroutine, Sequence
from contextlib import suppress
from dataclasses import replace
from typing import Any

from fmdxctrl import CLIENT_IDENTITY
from fmdxctrl.api.interfaces import ControlConnection, ScanChannel, TunerService
from fmdxctrl.api.protocol import antenna_command, eq_ims_command, tune_command
from fmdxctrl.audio.pipeline import AudioPipeline, PipelineFactory
from fmdxctrl.audio.reconfigurator import BufferReconfigurator
from fmdxctrl.core.commands import DEFAULT_CAPACITY, CommandQueue
from fmdxctrl.core.config import ConfigManager
from fmdxctrl.core.events import (
    ConnectionClosed,
    ConnectionErrored,
    ControlEvent,
    ScanErrored,
    StatePushed,
)
from fmdxctrl.core.state import StateStore
from fmdxctrl.core.url import normalize_server_url
from fmdxctrl.errors import (
    ConnectFailure,
    InvalidInput,
    ReconfigFailure,
    ScanTimeout,
    SessionLost,
)
from fmdxctrl.models.session_state import ConnectionPhase, SessionState
from fmdxctrl.models.settings import Settings
from fmdxctrl.models.spectrum import SpectrumPoint, ensure_spectrum

logger = logging.getLogger(__name__)

SCAN_POLL_INTERVAL = 0.5  # seconds between scan result fetches
SCAN_TIMEOUT = 10.0  # seconds before a scan is abandoned


async def _cancel(task: "asyncio.Task[Any] | None") -> None:
    """Cancel a task and wait for it, unless it is the caller."""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    with suppress(asyncio.CancelledError):
        await task


def _clear_rds(state: SessionState) -> SessionState:
    tuner = state.tuner_state
    if tuner is None or (tuner.ps.is_empty and tuner.rt0.is_empty and tuner.rt1.is_empty):
        return state
    return replace(state, tuner_state=tuner.with_rds_cleared())


class SessionOrchestrator:
    """Runs one tuner session at a time.

    Example:
        orchestrator = SessionOrchestrator(service, config, store, factory)
        await orchestrator.connect("ws://tuner.example.org:8080/")
        await orchestrator.tune(98.1)
        await orchestrator.disconnect()
    """

    def __init__(
        self,
        service: TunerService,
        config: ConfigManager,
        store: StateStore,
        pipeline_factory: PipelineFactory,
        *,
        client_identity: str = CLIENT_IDENTITY,
        command_capacity: int = DEFAULT_CAPACITY,
        scan_poll_interval: float = SCAN_POLL_INTERVAL,
        scan_timeout: float = SCAN_TIMEOUT,
    ) -> None:
        """Initialize the orchestrator and restore persisted fields.

        Args:
            service: Tuner server collaborator.
            config: Persisted settings store.
            store: State store this orchestrator will own.
            pipeline_factory: Builds audio pipelines for a buffer profile.
            client_identity: Identity sent with every server request.
            command_capacity: Size of the outbound command queue.
            scan_poll_interval: Seconds between scan result polls.
            scan_timeout: Seconds before a scan is abandoned.
        """
        self._service = service
        self._config = config
        self._store = store
        self._client_identity = client_identity
        self._scan_poll_interval = scan_poll_interval
        self._scan_timeout = scan_timeout

        settings = config.get_settings()
        store.reset(SessionState(server_address=config.get_server_url(), settings=settings))

        self._audio = BufferReconfigurator(pipeline_factory, settings, self._on_playing_changed)
        self._commands = CommandQueue(command_capacity)
        self._control: ControlConnection | None = None
        self._scan: ScanChannel | None = None
        self._event_task: asyncio.Task[None] | None = None
        self._scan_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()
        self._generation = 0
        self._draft_address: str | None = None

    @property
    def state(self) -> SessionState:
        """Return the current session snapshot."""
        return self._store.snapshot

    @property
    def generation(self) -> int:
        """Return the current session generation."""
        return self._generation

    @property
    def commands(self) -> CommandQueue:
        """Return the outbound command queue."""
        return self._commands

    @property
    def reconfigurator(self) -> BufferReconfigurator:
        """Return the audio buffer reconfigurator."""
        return self._audio

    # -- Connection lifecycle ------------------------------------------------

    def update_server_url(self, text: str) -> None:
        """Remember the address being edited, used by ``connect()``."""
        self._draft_address = text

    async def connect(self, raw_address: str | None = None) -> None:
        """Connect to a tuner server.

        Ignored while another connect is in flight. A live session is torn
        down first. Connect failures leave the session disconnected with
        ``last_error`` set.

        Args:
            raw_address: Address as typed; defaults to the edited address,
                then the persisted one.

        Raises:
            InvalidInput: If the address is blank or malformed. Raised
                before any I/O.
        """
        snapshot = self._store.snapshot
        if snapshot.is_connecting:
            logger.debug("Connect already in progress, ignoring")
            return

        if raw_address is None:
            raw_address = self._draft_address
        if raw_address is None:
            raw_address = snapshot.server_address
        try:
            address = normalize_server_url(raw_address)
        except InvalidInput as e:
            self._store.update(last_error=str(e))
            raise

        if snapshot.connection_phase is not ConnectionPhase.DISCONNECTED:
            await self.disconnect(status_message=f"Switching to {address}")

        self._draft_address = None
        self._config.set_server_url(address)
        self._generation += 1
        generation = self._generation

        logger.info("Connecting to %s", address)
        self._store.update(
            server_address=address,
            connection_phase=ConnectionPhase.CONNECTING,
            tuner_info=None,
            tuner_state=None,
            last_error=None,
            status_message=f"Connecting to {address}...",
        )

        try:
            info = await self._service.fetch_info(address, self._client_identity)
        except Exception as e:
            if generation == self._generation:
                self._fail_connect(ConnectFailure(address, e))
            return

        if generation != self._generation:
            logger.debug("Discarding tuner info from superseded connect to %s", address)
            return

        name = info.tuner_name.strip() or address
        logger.info("Connected to %s (%s)", name, address)
        self._store.update(
            tuner_info=info,
            connection_phase=ConnectionPhase.CONNECTED,
            last_error=None,
            status_message=f"Connected to {name}",
        )

        try:
            self._open_channels(address, generation)
        except Exception as e:
            await self._teardown()
            self._fail_connect(ConnectFailure(address, e))
            return

        self._spawn(self._refresh_spectrum(address, generation))

    def _fail_connect(self, failure: ConnectFailure) -> None:
        logger.warning("%s", failure)
        self._store.update(
            connection_phase=ConnectionPhase.DISCONNECTED,
            tuner_info=None,
            tuner_state=None,
            last_error=str(failure),
            status_message=str(failure),
        )

    def _open_channels(self, address: str, generation: int) -> None:
        """Open control and scan channels and start their consumers."""
        loop = asyncio.get_running_loop()
        events: asyncio.Queue[ControlEvent] = asyncio.Queue()

        def post(event: ControlEvent) -> None:
            # Callbacks may fire on a transport thread
            try:
                loop.call_soon_threadsafe(events.put_nowait, event)
            except RuntimeError:
                logger.debug("Event loop closed, dropping %s", type(event).__name__)

        self._control = self._service.open_control(
            address,
            self._client_identity,
            on_state=lambda state: post(StatePushed(state)),
            on_closed=lambda: post(ConnectionClosed()),
            on_error=lambda error: post(ConnectionErrored(error)),
        )
        self._event_task = asyncio.create_task(self._consume_events(generation, events))
        self._commands.start(self._control.send, on_error=self._on_send_error)

        self._scan = self._service.open_scan_channel(
            address,
            self._client_identity,
            on_error=lambda error: post(ScanErrored(error)),
        )

    async def disconnect(self, status_message: str = "Disconnected") -> None:
        """End the session and reset everything but persisted fields.

        Idempotent, and safe to call from the control connection's own
        closure handling.

        Args:
            status_message: Status note left in the reset state.
        """
        self._generation += 1
        await self._teardown()

        async with self._audio.acquire() as pipeline:
            if pipeline is not None:
                pipeline.stop()
                pipeline.clear()

        snapshot = self._store.snapshot
        self._store.reset(
            SessionState(
                server_address=snapshot.server_address,
                settings=snapshot.settings,
                status_message=status_message,
            )
        )
        logger.info("Session ended: %s", status_message)

    async def shutdown(self) -> None:
        """Disconnect and release the audio pipeline."""
        await self.disconnect()
        await self._audio.release()

    async def _teardown(self) -> None:
        """Close channels and cancel session tasks."""
        control, scan = self._control, self._scan
        self._control = None
        self._scan = None
        if control is not None:
            control.close()
        if scan is not None:
            scan.close()

        await self._commands.stop()
        await _cancel(self._event_task)
        self._event_task = None
        await _cancel(self._scan_task)
        self._scan_task = None
        for task in list(self._background):
            await _cancel(task)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # -- Inbound events ------------------------------------------------------

    async def _consume_events(self, generation: int, events: "asyncio.Queue[ControlEvent]") -> None:
        """Apply control connection events in receipt order."""
        while True:
            event = await events.get()
            if generation != self._generation:
                return

            if isinstance(event, StatePushed):
                self._store.update(tuner_state=event.state)
            elif isinstance(event, ConnectionErrored):
                logger.warning("Control connection error: %s", event.error)
                message = str(event.error)
                self._store.update(last_error=message, status_message=message)
            elif isinstance(event, ScanErrored):
                logger.warning("Scan channel error: %s", event.error)
                self._store.update(last_error=str(event.error))
            elif isinstance(event, ConnectionClosed):
                lost = SessionLost(self._store.snapshot.server_address)
                logger.warning("%s", lost)
                await self.disconnect(status_message=str(lost))
                self._store.update(last_error=str(lost))
                return

    def _on_send_error(self, error: Exception) -> None:
        self._store.update(last_error=f"Failed to send command: {error}")

    # -- Control intents -----------------------------------------------------

    async def tune(self, frequency_mhz: float) -> None:
        """Tune to a frequency given in MHz.

        A no-op if it rounds to the frequency already tuned. Otherwise the
        RDS text fields are cleared immediately and, if configured, the
        audio stream is restarted.

        Args:
            frequency_mhz: Target frequency in MHz.
        """
        if not math.isfinite(frequency_mhz):
            logger.warning("Ignoring tune request: %r MHz is not a frequency", frequency_mhz)
            return
        freq_khz = round(frequency_mhz * 1000)
        snapshot = self._store.snapshot
        if snapshot.tuner_state is not None and snapshot.tuner_state.freq_khz == freq_khz:
            logger.debug("Already tuned to %d kHz", freq_khz)
            return
        try:
            command = tune_command(freq_khz)
        except ValueError as e:
            logger.warning("Ignoring tune request: %s", e)
            return

        self._commands.submit(command)
        self._store.update_with(_clear_rds)

        if snapshot.settings.restart_audio_on_tune and snapshot.is_connected:
            await self._refresh_audio_stream(force_play=False)

    async def tune_step(self, step_khz: int) -> None:
        """Tune relative to the current frequency.

        Args:
            step_khz: Offset in kHz, negative to tune down.
        """
        state = self._store.snapshot.tuner_state
        if state is None:
            return
        await self.tune((state.freq_khz + step_khz) / 1000.0)

    async def toggle_eq(self) -> None:
        """Flip the equalizer flag, keeping IMS as it is."""
        state = self._store.snapshot.tuner_state
        if state is None:
            return
        self._commands.submit(eq_ims_command(not state.eq, state.ims))

    async def toggle_ims(self) -> None:
        """Flip the IMS flag, keeping the equalizer as it is."""
        state = self._store.snapshot.tuner_state
        if state is None:
            return
        self._commands.submit(eq_ims_command(state.eq, not state.ims))

    async def cycle_antenna(self) -> None:
        """Select the next antenna, wrapping around.

        The local state is updated right away without waiting for the
        server to echo the change.
        """
        snapshot = self._store.snapshot
        state = snapshot.tuner_state
        if state is None:
            return
        info = snapshot.tuner_info
        count = (info.antenna_count if info else 0) or 1
        current = state.antenna_index or 0
        next_index = (current + 1) % count

        self._commands.submit(antenna_command(next_index))

        def select(s: SessionState) -> SessionState:
            if s.tuner_state is None:
                return s
            return replace(s, tuner_state=replace(s.tuner_state, antenna_index=next_index))

        self._store.update_with(select)

    # -- Audio ---------------------------------------------------------------

    async def toggle_audio(self) -> None:
        """Pause if the pipeline reports playing, otherwise (re)start it."""
        if not self._store.snapshot.is_connected:
            return
        async with self._audio.acquire() as pipeline:
            if pipeline is None:
                return
            if pipeline.is_playing:
                pipeline.pause()
            else:
                self._prepare_stream(pipeline, force_play=True)

    async def _refresh_audio_stream(self, force_play: bool) -> None:
        async with self._audio.acquire() as pipeline:
            if pipeline is not None:
                self._prepare_stream(pipeline, force_play)

    def _prepare_stream(self, pipeline: AudioPipeline, force_play: bool) -> None:
        """Reload the current server stream, resuming if it was playing."""
        source = self._store.snapshot.server_address
        was_playing = pipeline.is_playing
        try:
            pipeline.stop()
            pipeline.set_source(source)
            pipeline.prepare()
            if was_playing or force_play:
                pipeline.play()
        except Exception as e:
            logger.warning("Audio stream restart failed: %s", e)
            self._store.update(last_error=f"Audio error: {e}")

    def _on_playing_changed(self, playing: bool) -> None:
        self._store.update(audio_playing=playing)

    # -- Settings ------------------------------------------------------------

    async def update_settings(self, settings: Settings) -> None:
        """Persist new user settings and apply their buffer profile."""
        self._config.save_settings(settings)
        self._store.update(settings=settings)
        await self.apply_buffer_settings(settings)

    async def reload_settings(self) -> None:
        """Re-read persisted settings after an external change and apply them."""
        settings = self._config.get_settings()
        self._store.update(settings=settings)
        await self.apply_buffer_settings(settings)

    async def apply_buffer_settings(self, settings: Settings) -> None:
        """Rebuild the audio pipeline if the buffer profile changed.

        Failures keep the old pipeline and only set ``last_error``.
        """
        try:
            await self._audio.apply_settings_change(settings)
        except ReconfigFailure as e:
            self._store.update(last_error=str(e))

    # -- Spectrum ------------------------------------------------------------

    async def request_scan(self) -> "asyncio.Task[None] | None":
        """Start a spectrum scan unless one is already running.

        Returns:
            The scan task, or None if the request was ignored.
        """
        snapshot = self._store.snapshot
        channel = self._scan
        if snapshot.is_scanning or channel is None:
            logger.debug("Scan request ignored (scanning=%s)", snapshot.is_scanning)
            return None
        generation = self._generation
        self._store.update(is_scanning=True)
        self._scan_task = asyncio.create_task(
            self._run_scan(channel, snapshot.server_address, generation)
        )
        return self._scan_task

    async def _run_scan(self, channel: ScanChannel, address: str, generation: int) -> None:
        try:
            await channel.trigger_scan()
            points = await self._poll_spectrum(address, generation)
        except ScanTimeout as e:
            logger.info("Spectrum scan abandoned: %s", e)
            if generation == self._generation:
                self._store.update_with(lambda s: replace(s, spectrum=ensure_spectrum(s.spectrum)))
        except Exception as e:
            logger.warning("Spectrum scan failed: %s", e)
            if generation == self._generation:
                self._store.update(last_error=f"Spectrum scan failed: {e}")
        else:
            if points is not None and generation == self._generation:
                logger.info("Spectrum scan returned %d points", len(points))
                self._store.update(spectrum=ensure_spectrum(points))
        finally:
            if generation == self._generation:
                self._store.update(is_scanning=False)

    async def _poll_spectrum(
        self, address: str, generation: int
    ) -> Sequence[SpectrumPoint] | None:
        """Poll for scan results until data arrives or the deadline passes.

        Returns:
            The first non-empty result, or None if the session changed.

        Raises:
            ScanTimeout: If no data arrived before the deadline.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._scan_timeout
        while loop.time() < deadline:
            await asyncio.sleep(self._scan_poll_interval)
            if generation != self._generation:
                return None
            try:
                points = await self._service.fetch_spectrum(address, self._client_identity)
            except Exception as e:
                if generation != self._generation:
                    return None
                logger.debug("Spectrum poll failed: %s", e)
                self._store.update(last_error=str(e))
                continue
            if generation != self._generation:
                return None
            if points:
                return points
        raise ScanTimeout(self._scan_timeout)

    async def refresh_spectrum(self) -> None:
        """Fetch the latest spectrum once, without triggering a scan."""
        address = self._store.snapshot.server_address
        if not address:
            return
        await self._refresh_spectrum(address, self._generation)

    async def _refresh_spectrum(self, address: str, generation: int) -> None:
        try:
            points = await self._service.fetch_spectrum(address, self._client_identity)
        except Exception as e:
            logger.debug("Spectrum refresh failed: %s", e)
            if generation == self._generation:
                self._store.update(last_error=str(e))
            return
        if generation == self._generation:
            self._store.update(spectrum=ensure_spectrum(points))
