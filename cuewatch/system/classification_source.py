"""Classification results and the adapter that produces them from audio."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

import numpy as np

from cuewatch.audio.energy_gate import EnergyGate
from cuewatch.audio.mic_stream import AudioBuffer
from cuewatch.audio.ring_buffer import RingBuffer
from cuewatch.system.config import PipelineConfiguration
from cuewatch.utils.constants import AUDIO
from cuewatch.utils.helpers import coerce_confidence

logger = logging.getLogger(__name__)

ClassifyFn = Callable[[np.ndarray], Mapping[str, float]]


@dataclass(frozen=True)
class ClassificationResult:
    """Label confidences for one analysis window."""

    confidences: Mapping[str, float] = field(default_factory=dict)
    timestamp: Optional[float] = None
    frame_position: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidences", MappingProxyType(_clean_confidences(self.confidences)))

    @classmethod
    def coerce(cls, result: Any) -> "ClassificationResult":
        """Accept a result, a bare mapping, or junk (which reads as empty)."""
        if isinstance(result, ClassificationResult):
            return result
        if isinstance(result, Mapping):
            return cls(result)
        if result is not None:
            logger.debug("Treating malformed classification result %r as empty", type(result).__name__)
        return cls()

    def confidence(self, label: str) -> float:
        return self.confidences.get(label, 0.0)

    def ranked(self) -> list[tuple[str, float]]:
        """Labels by descending confidence; ties go to the lexicographically first label."""
        return sorted(self.confidences.items(), key=lambda item: (-item[1], item[0]))


def _clean_confidences(raw: Any) -> dict[str, float]:
    if not isinstance(raw, Mapping):
        return {}
    return {label: coerce_confidence(value) for label, value in raw.items() if isinstance(label, str)}


class WindowedClassificationSource:
    """Assemble overlapping analysis windows from audio and classify them.

    Windows are ``config.window_duration`` long and start every
    ``config.hop_duration`` seconds. Each window goes through the energy gate
    first; gated windows never reach ``classify``. With
    ``silence_as_absence`` a gated window still yields an empty result so the
    pipeline advances (every label reads as 0) instead of skipping the slot.
    """

    def __init__(
        self,
        classify: ClassifyFn,
        config: PipelineConfiguration,
        sample_rate: int = AUDIO.sample_rate,
        silence_as_absence: bool = False,
    ) -> None:
        self.classify = classify
        self.sample_rate = sample_rate
        self.silence_as_absence = silence_as_absence
        self.gate = EnergyGate(config.energy_floor)
        self.window_samples = max(1, int(round(config.window_duration * sample_rate)))
        self.hop_samples = max(1, int(round(config.hop_duration * sample_rate)))
        self.rb = RingBuffer(size=self.window_samples * 2)
        self._pending = 0
        self._position = 0
        self.windows_classified = 0
        self.windows_gated = 0

    def reset(self) -> None:
        self.rb.clear()
        self._pending = 0
        self._position = 0

    def feed(self, buffer: AudioBuffer) -> Iterator[ClassificationResult]:
        """Consume one audio buffer and yield a result for every completed window."""
        samples = np.asarray(buffer.samples, dtype=np.float32)
        if buffer.frame_position is not None:
            self._position = buffer.frame_position
        offset = 0
        while offset < len(samples):
            # Write up to the next hop boundary so windows land exactly on the cadence.
            room = self.hop_samples - self._pending
            part = samples[offset : offset + room]
            self.rb.write(part)
            offset += len(part)
            self._pending += len(part)
            self._position += len(part)
            if self._pending < self.hop_samples:
                continue
            self._pending = 0
            window = self.rb.read(self.window_samples)
            if window is None:
                continue
            result = self._classify_window(window, self._position)
            if result is not None:
                yield result

    def results(self, buffers: Iterable[AudioBuffer]) -> Iterator[ClassificationResult]:
        for buffer in buffers:
            yield from self.feed(buffer)

    def _classify_window(self, window: np.ndarray, end_position: int) -> Optional[ClassificationResult]:
        timestamp = end_position / self.sample_rate
        if not self.gate.should_forward(window):
            self.windows_gated += 1
            if self.silence_as_absence:
                return ClassificationResult(timestamp=timestamp, frame_position=end_position)
            return None
        self.windows_classified += 1
        confidences = self.classify(window)
        return ClassificationResult(confidences, timestamp=timestamp, frame_position=end_position)


def known_labels(classifier: Any) -> frozenset[str]:
    """Labels a classifier can emit, read from its ``labels`` attribute."""
    labels = getattr(classifier, "labels", None)
    if labels is None:
        raise AttributeError(f"{type(classifier).__name__} does not publish its labels")
    return frozenset(labels)

