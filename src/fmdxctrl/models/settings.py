"""User-configurable settings and signal unit conversion."""

from dataclasses import dataclass
from enum import Enum

from fmdxctrl.models.tuner import TunerState

# Offsets from dBf
_DBUV_OFFSET = 11.25
_DBM_OFFSET = 120.0


class SignalUnit(Enum):
    """Unit used to display signal levels."""

    DBF = "dBf"
    DBUV = "dBµV"
    DBM = "dBm"

    @property
    def display_name(self) -> str:
        """Return the unit label shown next to values."""
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "SignalUnit":
        """Look up a unit by member name or display name, defaulting to dBf."""
        for unit in cls:
            if name in (unit.name, unit.value):
                return unit
        return cls.DBF

    def convert(self, dbf: float) -> float:
        """Convert a dBf level into this unit."""
        if self is SignalUnit.DBUV:
            return dbf - _DBUV_OFFSET
        if self is SignalUnit.DBM:
            return dbf - _DBM_OFFSET
        return dbf


@dataclass(frozen=True, slots=True)
class Settings:
    """Persisted user settings.

    Attributes:
        signal_unit: Display unit for signal levels.
        network_buffer_chunks: Audio chunks buffered on the network side.
        player_buffer_ms: Player buffer target in milliseconds.
        restart_audio_on_tune: Restart the audio stream after every retune.
    """

    signal_unit: SignalUnit = SignalUnit.DBF
    network_buffer_chunks: int = 2
    player_buffer_ms: int = 2000
    restart_audio_on_tune: bool = True


def format_signal(state: TunerState | None, unit: SignalUnit) -> str:
    """Format the signal level of a tuner state, or ``--`` if unknown."""
    if state is None or state.signal_dbf is None:
        return "--"
    return f"{unit.convert(state.signal_dbf):.1f} {unit.display_name}"
