"""Spectrum scan points and the synthetic baseline."""

from collections.abc import Iterable
from dataclasses import dataclass

# Default tunable band covered by the synthetic baseline
BASELINE_START_MHZ = 83.0
BASELINE_END_MHZ = 108.0
BASELINE_STEP_MHZ = 0.05


@dataclass(frozen=True, slots=True)
class SpectrumPoint:
    """A single scan sample.

    Attributes:
        frequency_mhz: Sample frequency in MHz.
        signal_level: Signal level in dBf.
    """

    frequency_mhz: float
    signal_level: float


def baseline_spectrum() -> tuple[SpectrumPoint, ...]:
    """Return a flat, zero-level spectrum covering the default band."""
    count = round((BASELINE_END_MHZ - BASELINE_START_MHZ) / BASELINE_STEP_MHZ) + 1
    return tuple(
        SpectrumPoint(round(BASELINE_START_MHZ + i * BASELINE_STEP_MHZ, 2), 0.0)
        for i in range(count)
    )


def ensure_spectrum(points: Iterable[SpectrumPoint]) -> tuple[SpectrumPoint, ...]:
    """Return points sorted by frequency, or the baseline if there are none."""
    ordered = tuple(sorted(points, key=lambda p: p.frequency_mhz))
    return ordered if ordered else baseline_spectrum()
