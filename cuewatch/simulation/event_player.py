"""Scenario and event simulation utilities."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np

from cuewatch.audio.mic_stream import AudioBuffer, MicStream
from cuewatch.utils.constants import AUDIO, SIMULATION

TONE_FREQUENCIES: Dict[str, float] = dict(zip(SIMULATION.class_labels, SIMULATION.tone_frequencies))


@dataclass
class AudioEvent:
    label: str
    start_s: float
    duration_s: float
    amplitude: float = 0.8

    @property
    def end_s(self) -> float:
        return self.start_s + self.duration_s


@dataclass
class Scenario:
    name: str
    length_s: float
    noise_level: float
    events: List[AudioEvent] = field(default_factory=list)


class EventPlayer:
    def __init__(self, scenario: Scenario, sample_rate: int = AUDIO.sample_rate, seed: Optional[int] = 0) -> None:
        self.scenario = scenario
        self.sample_rate = sample_rate
        self._rng = np.random.default_rng(seed)
        self.timeline = self._synthesize()

    def _synthesize(self) -> np.ndarray:
        num_samples = int(self.scenario.length_s * self.sample_rate)
        timeline = self._rng.normal(scale=self.scenario.noise_level, size=num_samples).astype(np.float32)
        for event in self.scenario.events:
            start = int(event.start_s * self.sample_rate)
            length = int(event.duration_s * self.sample_rate)
            end = min(start + length, num_samples)
            if end <= start:
                continue
            waveform = self._event_waveform(event.label, length, event.amplitude)
            timeline[start:end] += waveform[: end - start]
        return timeline

    def _event_waveform(self, label: str, length: int, amplitude: float) -> np.ndarray:
        freq = TONE_FREQUENCIES.get(label, 300.0)
        t = np.arange(length) / self.sample_rate
        waveform = amplitude * np.sin(2 * np.pi * freq * t)
        # Short fades instead of a full Hann envelope keep the event at full level.
        fade = min(length // 2, int(0.02 * self.sample_rate))
        if fade > 0:
            ramp = np.linspace(0.0, 1.0, fade)
            waveform[:fade] *= ramp
            waveform[-fade:] *= ramp[::-1]
        return waveform.astype(np.float32)

    def stream(self, chunk_size: int = AUDIO.chunk_size, realtime: bool = False) -> Iterable[AudioBuffer]:
        mic = MicStream(self.sample_rate, chunk_size, realtime=realtime)
        return mic.from_array(self.timeline)

    def event_schedule(self) -> Dict[str, List[AudioEvent]]:
        schedule: Dict[str, List[AudioEvent]] = {}
        for event in sorted(self.scenario.events, key=lambda e: e.start_s):
            schedule.setdefault(event.label, []).append(event)
        return schedule
