"""Per-label hysteresis state machine."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from cuewatch.system.config import LabelThresholds, check_count
from cuewatch.utils.helpers import coerce_confidence

logger = logging.getLogger(__name__)


class DetectionState(enum.Enum):
    NOT_DETECTED = "not_detected"
    DETECTED = "detected"


@dataclass(frozen=True)
class DetectionRecord:
    label: str
    is_detected: bool = False
    current_confidence: float = 0.0
    presence_streak: int = 0
    absence_streak: int = 0


class DetectionStateMachine:
    """Debounced present/absent decision for one label.

    Entering ``DETECTED`` needs ``presence_measurements_to_start`` consecutive
    windows at or above the presence threshold; leaving it needs
    ``absence_measurements_to_end`` consecutive windows below the absence
    threshold. Any other value resets the streak that is accumulating.
    """

    def __init__(
        self,
        label: str,
        thresholds: LabelThresholds,
        presence_measurements_to_start: int,
        absence_measurements_to_end: int,
    ) -> None:
        check_count("presence_measurements_to_start", presence_measurements_to_start)
        check_count("absence_measurements_to_end", absence_measurements_to_end)
        self.label = label
        self.thresholds = thresholds
        self.presence_measurements_to_start = presence_measurements_to_start
        self.absence_measurements_to_end = absence_measurements_to_end
        self.reset()

    def reset(self) -> None:
        self.state = DetectionState.NOT_DETECTED
        self.current_confidence = 0.0
        self.presence_streak = 0
        self.absence_streak = 0

    @property
    def is_detected(self) -> bool:
        return self.state is DetectionState.DETECTED

    @property
    def record(self) -> DetectionRecord:
        return DetectionRecord(
            label=self.label,
            is_detected=self.is_detected,
            current_confidence=self.current_confidence,
            presence_streak=self.presence_streak,
            absence_streak=self.absence_streak,
        )

    def advance(self, confidence: float, raw_confidence: Optional[float] = None) -> DetectionRecord:
        """Feed one window and return the updated record.

        ``raw_confidence`` is what the meter shows when ``confidence`` is a
        substituted signal (the smoother's 0/1 override).
        """
        confidence = coerce_confidence(confidence)
        self.current_confidence = confidence if raw_confidence is None else coerce_confidence(raw_confidence)

        if self.state is DetectionState.NOT_DETECTED:
            if confidence >= self.thresholds.presence:
                self.presence_streak += 1
            else:
                self.presence_streak = 0
            if self.presence_streak >= self.presence_measurements_to_start:
                self.state = DetectionState.DETECTED
                self.absence_streak = 0
                logger.info("%s detected (confidence %.3f)", self.label, self.current_confidence)
        else:
            if confidence < self.thresholds.absence:
                self.absence_streak += 1
            else:
                self.absence_streak = 0
            if self.absence_streak >= self.absence_measurements_to_end:
                self.state = DetectionState.NOT_DETECTED
                self.presence_streak = 0
                logger.info("%s no longer detected", self.label)

        return self.record
