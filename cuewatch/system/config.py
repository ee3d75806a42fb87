"""Immutable per-run settings for the detection pipeline."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from cuewatch.errors import InvalidConfiguration
from cuewatch.utils.constants import AUDIO, DETECTION, SMOOTHING


def _check_unit(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
        raise InvalidConfiguration(f"{name} must be a number in [0, 1], got {value!r}")


def check_count(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidConfiguration(f"{name} must be an integer >= 1, got {value!r}")


def _check_label(label: object) -> None:
    if not isinstance(label, str) or not label:
        raise InvalidConfiguration(f"labels must be non-empty strings, got {label!r}")


@dataclass(frozen=True)
class LabelThresholds:
    """Presence/absence cutoffs for a single label."""

    presence: float = DETECTION.presence_threshold
    absence: float = DETECTION.absence_threshold

    def __post_init__(self) -> None:
        _check_unit("presence threshold", self.presence)
        _check_unit("absence threshold", self.absence)
        if self.absence >= self.presence:
            raise InvalidConfiguration(
                f"absence threshold ({self.absence}) must be below presence threshold ({self.presence})"
            )


@dataclass(frozen=True)
class SmoothingConfig:
    """Majority vote over the last ``window`` top-1 picks.

    A label wins only when it appears at least ``required_majority`` times
    (or its entry in ``required_hits``). Picks whose confidence is below the
    label's floor, or whose lead over the runner-up is below ``min_margin``,
    are recorded as "no winner".
    """

    window: int = SMOOTHING.window
    required_majority: int = SMOOTHING.required_majority
    confidence_floor: float = SMOOTHING.confidence_floor
    label_floors: Mapping[str, float] = field(default_factory=dict)
    required_hits: Mapping[str, int] = field(default_factory=dict)
    min_margin: float = SMOOTHING.min_margin

    def __post_init__(self) -> None:
        check_count("smoothing window", self.window)
        check_count("required majority", self.required_majority)
        if self.required_majority > self.window:
            raise InvalidConfiguration(
                f"required majority ({self.required_majority}) cannot exceed window ({self.window})"
            )
        _check_unit("confidence floor", self.confidence_floor)
        _check_unit("min margin", self.min_margin)
        for label, floor in self.label_floors.items():
            _check_label(label)
            _check_unit(f"floor for {label!r}", floor)
        for label, hits in self.required_hits.items():
            _check_label(label)
            check_count(f"required hits for {label!r}", hits)
            if hits > self.window:
                raise InvalidConfiguration(
                    f"required hits for {label!r} ({hits}) cannot exceed window ({self.window})"
                )
        object.__setattr__(self, "label_floors", MappingProxyType(dict(self.label_floors)))
        object.__setattr__(self, "required_hits", MappingProxyType(dict(self.required_hits)))

    def floor_for(self, label: str) -> float:
        return self.label_floors.get(label, self.confidence_floor)

    def hits_for(self, label: str) -> int:
        return self.required_hits.get(label, self.required_majority)


@dataclass(frozen=True)
class PipelineConfiguration:
    """Settings for one pipeline run. Changing anything means a new run."""

    monitored_labels: FrozenSet[str] = frozenset()
    window_duration: float = DETECTION.window_duration_s
    overlap: float = DETECTION.overlap
    presence_threshold: float = DETECTION.presence_threshold
    absence_threshold: float = DETECTION.absence_threshold
    label_thresholds: Mapping[str, LabelThresholds] = field(default_factory=dict)
    presence_measurements_to_start: int = DETECTION.presence_measurements_to_start
    absence_measurements_to_end: int = DETECTION.absence_measurements_to_end
    energy_floor: Optional[float] = AUDIO.energy_floor
    smoothing: Optional[SmoothingConfig] = None

    def __post_init__(self) -> None:
        if isinstance(self.monitored_labels, str):
            raise InvalidConfiguration("monitored_labels must be a collection of labels, not a string")
        labels = frozenset(self.monitored_labels)
        for label in labels:
            _check_label(label)
        object.__setattr__(self, "monitored_labels", labels)

        if not isinstance(self.window_duration, (int, float)) or not self.window_duration > 0:
            raise InvalidConfiguration(f"window duration must be positive, got {self.window_duration!r}")
        if not isinstance(self.overlap, (int, float)) or not 0.0 <= self.overlap < 1.0:
            raise InvalidConfiguration(f"overlap must be in [0, 1), got {self.overlap!r}")

        # Global pair goes through the same checks as per-label overrides.
        LabelThresholds(self.presence_threshold, self.absence_threshold)
        for label, thresholds in self.label_thresholds.items():
            _check_label(label)
            if not isinstance(thresholds, LabelThresholds):
                raise InvalidConfiguration(f"thresholds for {label!r} must be LabelThresholds")
        object.__setattr__(self, "label_thresholds", MappingProxyType(dict(self.label_thresholds)))

        check_count("presence_measurements_to_start", self.presence_measurements_to_start)
        check_count("absence_measurements_to_end", self.absence_measurements_to_end)

        if self.energy_floor is not None:
            floor = self.energy_floor
            if isinstance(floor, bool) or not isinstance(floor, (int, float)) or not math.isfinite(floor) or floor < 0:
                raise InvalidConfiguration(f"energy floor must be a non-negative number, got {floor!r}")
        if self.smoothing is not None and not isinstance(self.smoothing, SmoothingConfig):
            raise InvalidConfiguration("smoothing must be a SmoothingConfig or None")

    @property
    def hop_duration(self) -> float:
        """Seconds between the starts of consecutive analysis windows."""
        return self.window_duration * (1.0 - self.overlap)

    def thresholds_for(self, label: str) -> LabelThresholds:
        override = self.label_thresholds.get(label)
        if override is not None:
            return override
        return LabelThresholds(self.presence_threshold, self.absence_threshold)
