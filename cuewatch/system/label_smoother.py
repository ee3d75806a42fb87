"""Majority-vote smoothing of the per-window top-1 label."""
from __future__ import annotations

from collections import Counter, deque
from typing import Any, Deque, Dict, Iterable, Optional

from cuewatch.system.classification_source import ClassificationResult
from cuewatch.system.config import SmoothingConfig

# Marker pushed for a window whose top label did not clear its floor.
NO_WINNER = None


class LabelSmoother:
    """Debounce the identity of the top label over the last ``window`` picks.

    Ties are deterministic: within a window the higher confidence wins and
    equal confidences go to the lexicographically first label; in the vote the
    higher count wins and equal counts go to the lexicographically first label.
    """

    def __init__(self, config: SmoothingConfig) -> None:
        self.config = config
        self._picks: Deque[Optional[str]] = deque(maxlen=config.window)
        self._winner: Optional[str] = NO_WINNER

    @property
    def current_winner(self) -> Optional[str]:
        return self._winner

    @property
    def picks(self) -> tuple[Optional[str], ...]:
        return tuple(self._picks)

    def pick_for(self, result: Any) -> Optional[str]:
        ranked = ClassificationResult.coerce(result).ranked()
        if not ranked:
            return NO_WINNER
        top_label, top_conf = ranked[0]
        if top_conf < self.config.floor_for(top_label):
            return NO_WINNER
        runner_up = ranked[1][1] if len(ranked) > 1 else 0.0
        if top_conf - runner_up < self.config.min_margin:
            return NO_WINNER
        return top_label

    def push(self, result: Any) -> Optional[str]:
        return self.push_pick(self.pick_for(result))

    def push_pick(self, pick: Optional[str]) -> Optional[str]:
        self._picks.append(pick)
        self._winner = self._vote()
        return self._winner

    def _vote(self) -> Optional[str]:
        counts = Counter(pick for pick in self._picks if pick is not NO_WINNER)
        if not counts:
            return NO_WINNER
        label, hits = min(counts.items(), key=lambda item: (-item[1], item[0]))
        if hits < self.config.hits_for(label):
            return NO_WINNER
        return label

    def reset(self) -> None:
        self._picks.clear()
        self._winner = NO_WINNER

    @staticmethod
    def effective_confidences(labels: Iterable[str], winner: Optional[str]) -> Dict[str, float]:
        return {label: 1.0 if label == winner else 0.0 for label in labels}
