"""Events delivered by the control and scan connections.

Connection callbacks only wrap their arguments in one of these and enqueue
them; the orchestrator applies them one at a time from a single loop.
"""

from dataclasses import dataclass

from fmdxctrl.models.tuner import TunerState


@dataclass(frozen=True)
class StatePushed:
    """The tuner pushed a new state."""

    state: TunerState


@dataclass(frozen=True)
class ConnectionClosed:
    """The control connection closed."""


@dataclass(frozen=True)
class ConnectionErrored:
    """The control connection reported an error."""

    error: Exception


@dataclass(frozen=True)
class ScanErrored:
    """The scan channel reported an error."""

    error: Exception


ControlEvent = StatePushed | ConnectionClosed | ConnectionErrored | ScanErrored
