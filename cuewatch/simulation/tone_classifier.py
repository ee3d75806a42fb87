"""Stand-in classifier scoring each label by spectral energy near its tone."""
from __future__ import annotations

from typing import Dict, Mapping, Optional

import numpy as np

from cuewatch.simulation.event_player import TONE_FREQUENCIES
from cuewatch.utils.constants import AUDIO, SIMULATION


class ToneClassifier:
    """Confidence of a label = share of window power within its tone band.

    Confidences are independent per label and need not sum to one.
    """

    def __init__(
        self,
        frequencies: Optional[Mapping[str, float]] = None,
        sample_rate: int = AUDIO.sample_rate,
        bandwidth_hz: float = SIMULATION.tone_bandwidth_hz,
    ) -> None:
        self.frequencies = dict(frequencies or TONE_FREQUENCIES)
        self.sample_rate = sample_rate
        self.bandwidth_hz = bandwidth_hz

    @property
    def labels(self) -> frozenset[str]:
        return frozenset(self.frequencies)

    def __call__(self, window: np.ndarray) -> Dict[str, float]:
        window = np.asarray(window, dtype=np.float64)
        if window.size == 0:
            return {}
        power = np.abs(np.fft.rfft(window * np.hanning(len(window)))) ** 2
        freqs = np.fft.rfftfreq(len(window), d=1.0 / self.sample_rate)
        total = float(power.sum())
        if total <= 0.0:
            return {label: 0.0 for label in self.frequencies}
        scores = {}
        for label, freq in self.frequencies.items():
            band = np.abs(freqs - freq) <= self.bandwidth_hz
            scores[label] = float(power[band].sum() / total)
        return scores
