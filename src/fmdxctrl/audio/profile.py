"""Buffer profile derived from user buffering settings."""

from dataclasses import dataclass

MAX_NETWORK_BUFFER_CHUNKS = 10
MIN_PLAYER_BUFFER_MS = 500

# Relations between the derived timings
_MAX_BUFFER_HEADROOM_MS = 300
_MIN_PLAYBACK_START_MS = 250


@dataclass(frozen=True, slots=True)
class BufferProfile:
    """Timing parameters for one audio pipeline instance.

    Attributes:
        network_chunks: Audio chunks buffered by the network source.
        min_buffer_ms: Buffer the player tries to keep filled.
        max_buffer_ms: Upper bound on buffered audio.
        playback_start_ms: Audio required before playback starts.
        playback_after_rebuffer_ms: Audio required to resume after a stall.
    """

    network_chunks: int
    min_buffer_ms: int
    max_buffer_ms: int
    playback_start_ms: int
    playback_after_rebuffer_ms: int


def compute_profile(network_chunks: int, player_buffer_ms: int) -> BufferProfile:
    """Compute the buffer profile for the given settings.

    Pure and monotonic in ``player_buffer_ms``. ``max_buffer_ms`` is always
    strictly greater than ``min_buffer_ms`` and ``playback_start_ms`` is
    never below 250 ms.

    Args:
        network_chunks: Requested network chunks, clamped to
            ``[1, MAX_NETWORK_BUFFER_CHUNKS]``.
        player_buffer_ms: Requested player buffer, floored at
            ``MIN_PLAYER_BUFFER_MS``.

    Returns:
        The derived BufferProfile.
    """
    chunks = max(1, min(MAX_NETWORK_BUFFER_CHUNKS, network_chunks))
    base = max(MIN_PLAYER_BUFFER_MS, player_buffer_ms)
    return BufferProfile(
        network_chunks=chunks,
        min_buffer_ms=base,
        max_buffer_ms=max(base * 2, base + _MAX_BUFFER_HEADROOM_MS),
        playback_start_ms=max(base // 2, _MIN_PLAYBACK_START_MS),
        playback_after_rebuffer_ms=base,
    )
