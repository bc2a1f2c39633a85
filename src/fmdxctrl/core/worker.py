"""QThread worker hosting the tuner session's asyncio event loop.

Qt widgets must run in the main thread, but the SessionOrchestrator uses
asyncio. This worker runs the event loop in a background thread; the main
thread calls the thread-safe intent methods below and observes the
StateStore's signals.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from PySide6.QtCore import QThread, Signal

from fmdxctrl.api.interfaces import TunerService
from fmdxctrl.audio.pipeline import PipelineFactory
from fmdxctrl.core.config import ConfigManager
from fmdxctrl.core.session import SessionOrchestrator
from fmdxctrl.core.state import StateStore
from fmdxctrl.models.settings import Settings

logger = logging.getLogger(__name__)


class SessionWorker(QThread):
    """Background thread running the SessionOrchestrator.

    Example:
        worker = SessionWorker(service, pipeline_factory)
        worker.state_store.state_changed.connect(render)
        worker.error_occurred.connect(lambda e: print(f"Error: {e}"))
        worker.start()
        worker.connect_to_server("tuner.example.org:8080")
    """

    # Error signal
    error_occurred = Signal(object)  # Exception

    def __init__(
        self,
        service: TunerService,
        pipeline_factory: PipelineFactory,
        config: ConfigManager | None = None,
        state_store: StateStore | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            service: Tuner server collaborator.
            pipeline_factory: Builds audio pipelines for a buffer profile.
            config: Persisted settings store (default: app QSettings).
            state_store: State store to publish to (default: new store).
        """
        super().__init__()
        self._config = config if config is not None else ConfigManager()
        self._store = state_store if state_store is not None else StateStore()
        self._orchestrator = SessionOrchestrator(
            service, self._config, self._store, pipeline_factory
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stopped: asyncio.Event | None = None
        self._should_run = True

        # Settings saved by anyone (e.g. a preferences dialog) reach the pipeline
        self._config.settings_changed.connect(self._on_settings_changed)

    @property
    def orchestrator(self) -> SessionOrchestrator:
        """Return the session orchestrator."""
        return self._orchestrator

    @property
    def state_store(self) -> StateStore:
        """Return the observable state store."""
        return self._store

    @property
    def config(self) -> ConfigManager:
        """Return the config manager."""
        return self._config

    @property
    def is_connected(self) -> bool:
        """Return True if the tuner session is connected."""
        return self._store.snapshot.is_connected

    def stop(self) -> None:
        """Signal the worker to stop (called from main thread)."""
        self._should_run = False
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._request_stop)

    def _request_stop(self) -> None:
        if self._stopped is not None:
            self._stopped.set()

    # -- Thread-safe intents (called from main thread) -----------------------

    def connect_to_server(self, address: str | None = None) -> None:
        """Connect to a tuner server.

        Args:
            address: Address as typed; None uses the edited or persisted one.
        """
        self._schedule(self._orchestrator.connect, address)

    def disconnect_from_server(self) -> None:
        """Disconnect from the tuner server."""
        self._schedule(self._orchestrator.disconnect)

    def update_server_url(self, text: str) -> None:
        """Remember the address being edited."""
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._orchestrator.update_server_url, text)

    def tune(self, frequency_mhz: float) -> None:
        """Tune to a frequency in MHz."""
        self._schedule(self._orchestrator.tune, frequency_mhz)

    def tune_step(self, step_khz: int) -> None:
        """Tune up or down by ``step_khz``."""
        self._schedule(self._orchestrator.tune_step, step_khz)

    def toggle_eq(self) -> None:
        """Toggle the equalizer flag."""
        self._schedule(self._orchestrator.toggle_eq)

    def toggle_ims(self) -> None:
        """Toggle the IMS flag."""
        self._schedule(self._orchestrator.toggle_ims)

    def cycle_antenna(self) -> None:
        """Select the next antenna."""
        self._schedule(self._orchestrator.cycle_antenna)

    def toggle_audio(self) -> None:
        """Play or pause the audio stream."""
        self._schedule(self._orchestrator.toggle_audio)

    def request_scan(self) -> None:
        """Start a spectrum scan."""
        self._schedule(self._orchestrator.request_scan)

    def refresh_spectrum(self) -> None:
        """Fetch the latest spectrum without scanning."""
        self._schedule(self._orchestrator.refresh_spectrum)

    def update_settings(self, settings: Settings) -> None:
        """Persist and apply new user settings."""
        self._schedule(self._orchestrator.update_settings, settings)

    def _on_settings_changed(self, _settings: object) -> None:
        self._schedule(self._orchestrator.reload_settings)

    def _schedule(self, func: Callable[..., Coroutine[Any, Any, Any]], *args: Any) -> None:
        """Run ``func(*args)`` on the worker loop; no-op if it isn't running."""
        if self._loop and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self._safe_call(func, *args), self._loop)
        else:
            logger.debug("Worker loop not running, dropping %s", func.__name__)

    async def _safe_call(self, func: Callable[..., Coroutine[Any, Any, Any]], *args: Any) -> None:
        """Await an orchestrator call, reporting errors via error_occurred."""
        try:
            await func(*args)
        except Exception as e:
            self.error_occurred.emit(e)

    # -- Thread entry point --------------------------------------------------

    def run(self) -> None:
        """Run the worker thread (entry point)."""
        # Create new event loop for this thread
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            self._loop.run_until_complete(self._serve())
        except Exception as e:
            self.error_occurred.emit(e)
        finally:
            try:
                self._loop.run_until_complete(self._orchestrator.shutdown())
            except Exception as e:
                self.error_occurred.emit(e)
            self._loop.close()
            self._loop = None
            self._stopped = None

    async def _serve(self) -> None:
        """Keep the loop alive until stop() is called."""
        self._stopped = asyncio.Event()
        if not self._should_run:
            return
        logger.info("Session worker started")
        await self._stopped.wait()
        logger.info("Session worker stopping")
