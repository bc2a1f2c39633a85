"""SessionState model: the single aggregate read by presentation."""

from dataclasses import dataclass, field
from enum import Enum

from fmdxctrl.models.settings import Settings
from fmdxctrl.models.spectrum import SpectrumPoint, baseline_spectrum
from fmdxctrl.models.tuner import TunerInfo, TunerState


class ConnectionPhase(Enum):
    """Lifecycle phase of the tuner session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True, slots=True)
class SessionState:
    """Immutable snapshot of the tuner session.

    Only the orchestrator produces new snapshots; everything else reads them.

    Attributes:
        server_address: Last normalized server URL (persisted).
        connection_phase: Current lifecycle phase.
        tuner_info: Static capabilities, set once per successful connect.
        tuner_state: Latest pushed state, None until the first push.
        spectrum: Scan points sorted by frequency, never empty.
        is_scanning: True while a scan request is outstanding.
        audio_playing: Mirrors the audio pipeline's reported play state.
        settings: User settings (persisted).
        last_error: Last error message for display.
        status_message: Last status note for display.
    """

    server_address: str = ""
    connection_phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
    tuner_info: TunerInfo | None = None
    tuner_state: TunerState | None = None
    spectrum: tuple[SpectrumPoint, ...] = field(default_factory=baseline_spectrum)
    is_scanning: bool = False
    audio_playing: bool = False
    settings: Settings = field(default_factory=Settings)
    last_error: str | None = None
    status_message: str | None = None

    @property
    def is_connected(self) -> bool:
        """Return True if the session is fully connected."""
        return self.connection_phase is ConnectionPhase.CONNECTED

    @property
    def is_connecting(self) -> bool:
        """Return True while a connect attempt is in flight."""
        return self.connection_phase is ConnectionPhase.CONNECTING

    @property
    def antenna_names(self) -> tuple[str, ...]:
        """Return known antenna names, empty if no tuner info."""
        return self.tuner_info.antenna_names if self.tuner_info else ()

    @property
    def antenna_label(self) -> str:
        """Return the name of the selected antenna, or ``Default``."""
        names = self.antenna_names
        index = 0
        if self.tuner_state and self.tuner_state.antenna_index is not None:
            index = self.tuner_state.antenna_index
        if 0 <= index < len(names):
            return names[index]
        return "Default"

    @property
    def pty_label(self) -> str:
        """Return the programme type label, ``0/None`` when unknown."""
        if self.tuner_state is None:
            return "0/None"
        return self.tuner_state.pty_display()
