"""Audio pipeline contract, buffer profiles and live reconfiguration."""

from fmdxctrl.audio.pipeline import AudioPipeline, PipelineFactory
from fmdxctrl.audio.profile import BufferProfile, compute_profile
from fmdxctrl.audio.reconfigurator import BufferReconfigurator

__all__ = [
    "AudioPipeline",
    "BufferProfile",
    "BufferReconfigurator",
    "PipelineFactory",
    "compute_profile",
]
