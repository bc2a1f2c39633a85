"""Tuner server command surface and collaborator contracts."""

from fmdxctrl.api.interfaces import ControlConnection, ScanChannel, TunerService
from fmdxctrl.api.protocol import (
    antenna_command,
    eq_ims_command,
    tune_command,
)

__all__ = [
    "ControlConnection",
    "ScanChannel",
    "TunerService",
    "antenna_command",
    "eq_ims_command",
    "tune_command",
]
