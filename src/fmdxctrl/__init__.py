"""FMDX-CTRL: remote-control client for FM-DX tuner servers."""

__version__ = "0.1.0"

# Sent as the client identity (user agent) on every server request.
CLIENT_IDENTITY = f"fmdxctrl/{__version__}"
