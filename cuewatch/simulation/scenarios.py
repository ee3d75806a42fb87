"""Canned listening scenarios."""
from __future__ import annotations

from typing import Callable, Dict

from cuewatch.simulation.event_player import AudioEvent, Scenario


def indoor() -> Scenario:
    events = [
        AudioEvent("doorbell", start_s=5.0, duration_s=3.0, amplitude=0.9),
        AudioEvent("speech", start_s=15.0, duration_s=4.0, amplitude=0.5),
        AudioEvent("knock", start_s=25.0, duration_s=2.5, amplitude=0.8),
    ]
    return Scenario(name="indoor", length_s=40.0, noise_level=0.02, events=events)


def outdoor() -> Scenario:
    events = [
        AudioEvent("fire_alarm", start_s=10.0, duration_s=5.0, amplitude=1.0),
        AudioEvent("speech", start_s=30.0, duration_s=3.0, amplitude=0.5),
    ]
    return Scenario(name="outdoor", length_s=50.0, noise_level=0.05, events=events)


def library() -> Scenario:
    events = [
        AudioEvent("knock", start_s=8.0, duration_s=2.0, amplitude=0.7),
        AudioEvent("doorbell", start_s=20.0, duration_s=2.5, amplitude=0.6),
    ]
    return Scenario(name="library", length_s=35.0, noise_level=0.005, events=events)


SCENARIOS: Dict[str, Callable[[], Scenario]] = {
    "indoor": indoor,
    "outdoor": outdoor,
    "library": library,
}
