"""Tuner models: static capabilities and pushed dynamic state."""

from dataclasses import dataclass, field, replace

# European RDS programme type names, indexed by PTY code.
EUROPE_PROGRAMMES: tuple[str, ...] = (
    "No PTY", "News", "Current Affairs", "Info",
    "Sport", "Education", "Drama", "Culture", "Science", "Varied",
    "Pop M", "Rock M", "Easy Listening", "Light Classical",
    "Serious Classical", "Other Music", "Weather", "Finance",
    "Children's Programmes", "Social Affairs", "Religion", "Phone-in",
    "Travel", "Leisure", "Jazz Music", "Country Music", "National Music",
    "Oldies Music", "Folk Music", "Documentary", "Alarm Test",
)


@dataclass(frozen=True, slots=True)
class TunerInfo:
    """Static tuner capabilities, fetched once per connect.

    Attributes:
        tuner_name: Name the server operator gave the tuner.
        tuner_description: Free-form description text.
        antenna_names: Selectable antenna names, in index order.
        can_switch_antenna: Whether the server accepts antenna selection.
    """

    tuner_name: str = ""
    tuner_description: str = ""
    antenna_names: tuple[str, ...] = ()
    can_switch_antenna: bool = False

    @property
    def antenna_count(self) -> int:
        """Return the number of known antennas."""
        return len(self.antenna_names)


@dataclass(frozen=True, slots=True)
class RdsText:
    """An RDS text field with a per-character error flag.

    Attributes:
        text: Decoded characters.
        errors: One flag per character; 0 means received cleanly, higher
            values mean less confidence in that character.
    """

    text: str = ""
    errors: tuple[int, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Return True if no characters have been received."""
        return not self.text


@dataclass(frozen=True, slots=True)
class TunerState:
    """Dynamic tuner state as pushed by the server.

    Attributes:
        freq_khz: Tuned frequency in kHz.
        step_khz: Tuning step size in kHz.
        min_freq_khz: Lower bound of the tunable band in kHz.
        max_freq_khz: Upper bound of the tunable band in kHz.
        signal_dbf: Signal level in dBf, None if not reported.
        ps: Programme service name.
        rt0: First radiotext line.
        rt1: Second radiotext line.
        pi: Programme identification code (hex string).
        pty: Programme type code.
        ecc: Extended country code (hex string).
        eq: Equalizer flag.
        ims: IMS flag.
        antenna_index: Selected antenna, None if not reported.
        users: Number of clients connected to the server.
    """

    freq_khz: int
    step_khz: int = 100
    min_freq_khz: int = 64_000
    max_freq_khz: int = 108_000
    signal_dbf: float | None = None
    ps: RdsText = field(default_factory=RdsText)
    rt0: RdsText = field(default_factory=RdsText)
    rt1: RdsText = field(default_factory=RdsText)
    pi: str = ""
    pty: int = 0
    ecc: str = ""
    eq: bool = False
    ims: bool = False
    antenna_index: int | None = None
    users: int = 0

    @property
    def freq_mhz(self) -> float:
        """Return the tuned frequency in MHz."""
        return self.freq_khz / 1000.0

    @property
    def min_freq_mhz(self) -> float:
        """Return the lower band edge in MHz."""
        return self.min_freq_khz / 1000.0

    @property
    def max_freq_mhz(self) -> float:
        """Return the upper band edge in MHz."""
        return self.max_freq_khz / 1000.0

    def pty_display(self, programmes: tuple[str, ...] = EUROPE_PROGRAMMES) -> str:
        """Return the programme type as ``"<code>/<name>"``."""
        if 0 <= self.pty < len(programmes):
            return f"{self.pty}/{programmes[self.pty]}"
        return f"{self.pty}/Unknown"

    def with_rds_cleared(self) -> "TunerState":
        """Return a copy with programme service name and radiotext blanked.

        The server never blanks these after a retune, so text from the
        previous station would otherwise linger.
        """
        return replace(self, ps=RdsText(), rt0=RdsText(), rt1=RdsText())
