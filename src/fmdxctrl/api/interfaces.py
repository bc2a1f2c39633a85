"""Collaborator contracts for the tuner server.

The session orchestrator talks to the server only through these classes.
Concrete transports (HTTP for tuner info, websockets for control and scan
data) implement them; the orchestrator never sees wire framing, only
decoded models and exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from fmdxctrl.models.spectrum import SpectrumPoint
from fmdxctrl.models.tuner import TunerInfo, TunerState

# Type aliases for control connection callbacks
StateHandler = Callable[[TunerState], None]
ClosedHandler = Callable[[], None]
ErrorHandler = Callable[[Exception], None]


class ControlConnection(ABC):
    """Open bidirectional control channel to the tuner."""

    @abstractmethod
    async def send(self, command: str) -> None:
        """Send one command string to the tuner."""

    @abstractmethod
    def close(self) -> None:
        """Close the channel. Closing twice is a no-op."""


class ScanChannel(ABC):
    """Side channel used to start a spectrum scan."""

    @abstractmethod
    async def trigger_scan(self) -> None:
        """Ask the server to start a spectrum sweep."""

    @abstractmethod
    def close(self) -> None:
        """Close the channel. Closing twice is a no-op."""


class TunerService(ABC):
    """Factory for tuner server endpoints.

    Every call carries the client identity so the server can tell
    clients apart.
    """

    @abstractmethod
    async def fetch_info(self, endpoint: str, client_identity: str) -> TunerInfo:
        """Fetch static tuner capabilities.

        Raises:
            Exception: On network failure or a malformed response.
        """

    @abstractmethod
    def open_control(
        self,
        endpoint: str,
        client_identity: str,
        on_state: StateHandler,
        on_closed: ClosedHandler,
        on_error: ErrorHandler,
    ) -> ControlConnection:
        """Open the control connection.

        The handlers may be invoked from any thread.
        """

    @abstractmethod
    def open_scan_channel(
        self,
        endpoint: str,
        client_identity: str,
        on_error: ErrorHandler,
    ) -> ScanChannel:
        """Open the scan trigger channel."""

    @abstractmethod
    async def fetch_spectrum(
        self,
        endpoint: str,
        client_identity: str,
    ) -> Sequence[SpectrumPoint]:
        """Fetch the latest scan result; empty if no scan data is ready.

        Raises:
            Exception: On network failure or a malformed response.
        """
