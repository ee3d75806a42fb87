"""Score detection onsets against a scenario's event schedule."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from cuewatch.simulation.event_player import AudioEvent
from cuewatch.system.pipeline import Snapshot


@dataclass
class DetectionReport:
    latencies: Dict[str, List[float]] = field(default_factory=dict)
    misses: Dict[str, int] = field(default_factory=dict)
    false_onsets: Dict[str, int] = field(default_factory=dict)
    duration_s: float = 0.0

    def summary(self) -> Dict[str, float]:
        return {label: float(np.mean(values)) for label, values in self.latencies.items() if values}

    @property
    def false_onsets_per_minute(self) -> float:
        minutes = self.duration_s / 60.0
        return sum(self.false_onsets.values()) / minutes if minutes else 0.0


def detection_onsets(snapshots: Iterable[Snapshot]) -> List[Tuple[str, float]]:
    """(label, timestamp) for every not-detected -> detected transition."""
    onsets: List[Tuple[str, float]] = []
    previous: Dict[str, bool] = {}
    for snapshot in snapshots:
        for label, record in snapshot:
            if record.is_detected and not previous.get(label, False):
                onsets.append((label, snapshot.timestamp if snapshot.timestamp is not None else float(snapshot.window_index)))
            previous[label] = record.is_detected
    return onsets


def evaluate(
    snapshots: Sequence[Snapshot],
    schedule: Mapping[str, List[AudioEvent]],
    tolerance_s: float = 1.5,
    duration_s: float = 0.0,
) -> DetectionReport:
    report = DetectionReport(duration_s=duration_s)
    consumed = {label: [False] * len(events) for label, events in schedule.items()}
    for label, timestamp in detection_onsets(snapshots):
        events = schedule.get(label, [])
        matched = False
        for idx, event in enumerate(events):
            if consumed[label][idx]:
                continue
            if event.start_s <= timestamp <= event.end_s + tolerance_s:
                consumed[label][idx] = True
                report.latencies.setdefault(label, []).append(timestamp - event.start_s)
                matched = True
                break
        if not matched:
            report.false_onsets[label] = report.false_onsets.get(label, 0) + 1
    report.misses = {label: flags.count(False) for label, flags in consumed.items()}
    return report
