"""Exception types raised inside the tuner session core."""


class TunerError(Exception):
    """Base class for tuner session errors."""


class InvalidInput(TunerError, ValueError):
    """A server address was blank or did not form a valid URL."""


class ConnectFailure(TunerError):
    """Fetching tuner info or opening the session failed."""

    def __init__(self, endpoint: str, cause: BaseException) -> None:
        super().__init__(f"Failed to connect to {endpoint}: {cause}")
        self.endpoint = endpoint
        self.cause = cause


class SessionLost(TunerError):
    """The control connection closed without being asked to."""

    def __init__(self, endpoint: str) -> None:
        super().__init__(f"Connection to {endpoint} lost")
        self.endpoint = endpoint


class ScanTimeout(TunerError):
    """No usable scan result arrived before the deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No spectrum data within {timeout:.1f}s")
        self.timeout = timeout


class ReconfigFailure(TunerError):
    """Building the replacement audio pipeline failed.

    The previous pipeline is still active when this is raised.
    """
