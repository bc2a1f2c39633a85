"""Control command strings understood by the tuner server.

Commands are plain text frames sent on the control connection. The
formats here must match the server byte for byte.
"""


def tune_command(freq_khz: int) -> str:
    """Return the tune command for a frequency in kHz (``T<kHz>``)."""
    if freq_khz <= 0:
        raise ValueError(f"Frequency must be positive, got {freq_khz} kHz")
    return f"T{freq_khz}"


def eq_ims_command(eq: bool, ims: bool) -> str:
    """Return the combined equalizer/IMS command (``G<eq><ims>``).

    Both flags travel in one command, so callers must always pass the
    current value of the flag they are not changing.
    """
    return f"G{int(eq)}{int(ims)}"


def antenna_command(index: int) -> str:
    """Return the antenna select command (``Z<index>``)."""
    if index < 0:
        raise ValueError(f"Antenna index must be non-negative, got {index}")
    return f"Z{index}"
