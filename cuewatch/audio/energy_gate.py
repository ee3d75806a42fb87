"""Loudness pre-filter deciding whether audio is worth classifying."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from cuewatch.errors import InvalidConfiguration
from cuewatch.utils.constants import AUDIO
from cuewatch.utils.helpers import rms, to_float_pcm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergyGate:
    """Drop buffers whose RMS falls below ``floor``.

    The comparison is inclusive: a buffer exactly at the floor is forwarded.
    ``floor=None`` disables gating for well-formed buffers. Malformed buffers
    (empty, non-numeric, non-finite) count as zero energy.
    """

    floor: Optional[float] = AUDIO.energy_floor

    def __post_init__(self) -> None:
        if self.floor is not None and self.floor < 0:
            raise InvalidConfiguration(f"energy floor must be non-negative, got {self.floor}")

    def energy(self, buffer: Any) -> float:
        data = to_float_pcm(buffer)
        if data is None:
            return 0.0
        return rms(data)

    def should_forward(self, buffer: Any) -> bool:
        data = to_float_pcm(buffer)
        if data is None:
            logger.debug("Dropping malformed audio buffer")
            return False
        if self.floor is None:
            return True
        level = rms(data)
        if level < self.floor:
            logger.debug("Gated buffer: rms=%.5f < floor=%.5f", level, self.floor)
            return False
        return True
