"""Data models for tuner info, tuner state, spectrum and session state."""

from fmdxctrl.models.session_state import ConnectionPhase, SessionState
from fmdxctrl.models.settings import Settings, SignalUnit, format_signal
from fmdxctrl.models.spectrum import SpectrumPoint, baseline_spectrum, ensure_spectrum
from fmdxctrl.models.tuner import RdsText, TunerInfo, TunerState

__all__ = [
    "ConnectionPhase",
    "RdsText",
    "SessionState",
    "Settings",
    "SignalUnit",
    "SpectrumPoint",
    "TunerInfo",
    "TunerState",
    "baseline_spectrum",
    "ensure_spectrum",
    "format_signal",
]
