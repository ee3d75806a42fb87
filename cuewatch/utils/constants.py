"""Global constants shared across CueWatch modules."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioConstants:
    sample_rate: int = 16000
    chunk_size: int = 1024
    # RMS on a [-1, 1] normalized scale below which a window is silence.
    energy_floor: float = 0.01


@dataclass(frozen=True)
class DetectionConstants:
    window_duration_s: float = 1.5
    overlap: float = 0.9
    presence_threshold: float = 0.5
    absence_threshold: float = 0.3
    presence_measurements_to_start: int = 2
    absence_measurements_to_end: int = 30


@dataclass(frozen=True)
class SmoothingConstants:
    window: int = 5
    required_majority: int = 3
    confidence_floor: float = 0.0
    min_margin: float = 0.0


@dataclass(frozen=True)
class SimulationConstants:
    class_labels: tuple[str, ...] = (
        "doorbell",
        "fire_alarm",
        "knock",
        "speech",
        "vacuum",
    )
    # Carrier frequency (Hz) of each synthetic event.
    tone_frequencies: tuple[float, ...] = (700.0, 1000.0, 200.0, 350.0, 120.0)
    tone_bandwidth_hz: float = 40.0


AUDIO = AudioConstants()
DETECTION = DetectionConstants()
SMOOTHING = SmoothingConstants()
SIMULATION = SimulationConstants()
