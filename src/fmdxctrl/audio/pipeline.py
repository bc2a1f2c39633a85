"""Audio pipeline contract.

A pipeline is a streaming media player built with a fixed buffer profile.
Changing the profile means building a new instance; see
``BufferReconfigurator``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from fmdxctrl.audio.profile import BufferProfile

PlayingListener = Callable[[bool], None]


class AudioPipeline(ABC):
    """Streaming audio player with an immutable buffer profile."""

    @property
    @abstractmethod
    def profile(self) -> BufferProfile:
        """Return the profile this instance was built with."""

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        """Return True if audio is currently audible."""

    @property
    @abstractmethod
    def play_when_ready(self) -> bool:
        """Return True if the player intends to play once buffered."""

    @property
    @abstractmethod
    def sources(self) -> tuple[str, ...]:
        """Return the queued source URIs."""

    @property
    @abstractmethod
    def current_index(self) -> int:
        """Return the index of the current source in the queue."""

    @property
    @abstractmethod
    def position_ms(self) -> int:
        """Return the playback position within the current source."""

    @abstractmethod
    def set_source(self, uri: str) -> None:
        """Replace the queue with a single source."""

    @abstractmethod
    def set_sources(self, uris: Sequence[str], index: int, position_ms: int) -> None:
        """Replace the queue and seek to ``index``/``position_ms``."""

    @abstractmethod
    def set_play_when_ready(self, play: bool) -> None:
        """Set the play intent without starting playback."""

    @abstractmethod
    def set_playing_listener(self, listener: PlayingListener | None) -> None:
        """Register the callback notified on play/pause transitions."""

    @abstractmethod
    def prepare(self) -> None:
        """Start loading the current source."""

    @abstractmethod
    def play(self) -> None:
        """Start or resume playback."""

    @abstractmethod
    def pause(self) -> None:
        """Pause playback."""

    @abstractmethod
    def stop(self) -> None:
        """Stop playback and drop buffered audio."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every queued source."""

    @abstractmethod
    def release(self) -> None:
        """Free all resources. The instance is unusable afterwards."""


PipelineFactory = Callable[[BufferProfile], AudioPipeline]
