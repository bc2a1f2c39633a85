"""Hot-swapping of the audio pipeline when buffer settings change.

A pipeline's buffer profile is fixed at construction, so applying new
buffering settings means building a second pipeline, seeding it with the
first one's queue and position, and swapping it in. The swap happens under
a lock so that two settings changes arriving back to back never race on
the active pipeline reference.

Example:
    reconfigurator = BufferReconfigurator(factory, settings)
    await reconfigurator.apply_settings_change(new_settings)

    async with reconfigurator.acquire() as pipeline:
        pipeline.pause()
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fmdxctrl.audio.pipeline import AudioPipeline, PipelineFactory, PlayingListener
from fmdxctrl.audio.profile import BufferProfile, compute_profile
from fmdxctrl.errors import ReconfigFailure
from fmdxctrl.models.settings import Settings

logger = logging.getLogger(__name__)


class BufferReconfigurator:
    """Owns the active audio pipeline and swaps it on profile changes.

    Anything that reads and then acts on the active pipeline must go
    through ``acquire()`` so it never touches a pipeline mid-swap.
    """

    def __init__(
        self,
        factory: PipelineFactory,
        settings: Settings,
        on_playing_changed: PlayingListener | None = None,
    ) -> None:
        """Build the initial pipeline.

        Args:
            factory: Builds a pipeline for a given profile.
            settings: Settings the initial profile is computed from.
            on_playing_changed: Notified on play/pause transitions of
                whichever pipeline is active.
        """
        self._factory = factory
        self._on_playing_changed = on_playing_changed
        self._lock = asyncio.Lock()
        self._profile = compute_profile(settings.network_buffer_chunks, settings.player_buffer_ms)
        self._pipeline: AudioPipeline | None = factory(self._profile)
        self._pipeline.set_playing_listener(on_playing_changed)
        self._substitutions = 0

    @property
    def profile(self) -> BufferProfile:
        """Return the profile of the active pipeline."""
        return self._profile

    @property
    def substitutions(self) -> int:
        """Return how many times the pipeline has been swapped."""
        return self._substitutions

    @property
    def is_playing(self) -> bool:
        """Return the active pipeline's reported play state."""
        return self._pipeline is not None and self._pipeline.is_playing

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AudioPipeline | None]:
        """Hold the reconfiguration lock and yield the active pipeline.

        Yields None once the reconfigurator has been released.
        """
        async with self._lock:
            yield self._pipeline

    async def apply_settings_change(self, settings: Settings) -> bool:
        """Swap in a pipeline built for ``settings`` if the profile changed.

        Args:
            settings: The settings now in effect.

        Returns:
            True if the pipeline was replaced, False if the profile was
            unchanged.

        Raises:
            ReconfigFailure: If the new pipeline could not be built or
                prepared. The old pipeline stays active.
        """
        async with self._lock:
            profile = compute_profile(settings.network_buffer_chunks, settings.player_buffer_ms)
            if profile == self._profile:
                logger.debug("Buffer profile unchanged, keeping pipeline")
                return False

            old = self._pipeline
            if old is None:
                return False

            sources = old.sources
            index = old.current_index
            position_ms = old.position_ms
            was_playing = old.play_when_ready

            new: AudioPipeline | None = None
            try:
                new = self._factory(profile)
                new.set_sources(sources, index, position_ms)
                new.prepare()
                new.set_play_when_ready(was_playing)
            except Exception as e:
                logger.warning("Audio pipeline rebuild failed, keeping old one: %s", e)
                if new is not None:
                    new.release()
                raise ReconfigFailure(f"Failed to apply buffer settings: {e}") from e

            old.set_playing_listener(None)
            self._pipeline = new
            self._profile = profile
            self._substitutions += 1
            new.set_playing_listener(self._on_playing_changed)
            old.release()

            if was_playing:
                new.play()

            logger.info(
                "Audio pipeline rebuilt: %d chunks, %d-%d ms buffer (playing=%s)",
                profile.network_chunks,
                profile.min_buffer_ms,
                profile.max_buffer_ms,
                was_playing,
            )
            return True

    async def release(self) -> None:
        """Release the active pipeline. Safe to call more than once."""
        async with self._lock:
            if self._pipeline is None:
                return
            self._pipeline.set_playing_listener(None)
            self._pipeline.release()
            self._pipeline = None
