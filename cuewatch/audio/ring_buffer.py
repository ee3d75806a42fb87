"""Circular buffer holding the most recent audio samples."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


@dataclass
class RingBuffer:
    size: int
    dtype: type = np.float32
    buffer: np.ndarray = field(init=False)
    write_pos: int = field(init=False, default=0)
    filled: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError(f"ring buffer size must be positive, got {self.size}")
        self.buffer = np.zeros(self.size, dtype=self.dtype)

    def write(self, data: np.ndarray) -> None:
        data = np.asarray(data, dtype=self.dtype)
        if len(data) >= self.size:
            # Only the tail survives a write larger than the buffer.
            data = data[-self.size :]
        n = len(data)
        end = self.write_pos + n
        if end <= self.size:
            self.buffer[self.write_pos : end] = data
        else:
            first = self.size - self.write_pos
            self.buffer[self.write_pos :] = data[:first]
            self.buffer[: end - self.size] = data[first:]
        self.write_pos = end % self.size
        self.filled = min(self.size, self.filled + n)

    def read(self, length: int) -> Optional[np.ndarray]:
        """Return the newest ``length`` samples, or None until that many were written."""
        if length > self.filled:
            return None
        start = (self.write_pos - length) % self.size
        if start + length <= self.size:
            return self.buffer[start : start + length].copy()
        first = self.size - start
        return np.concatenate((self.buffer[start:], self.buffer[: length - first]))

    def clear(self) -> None:
        self.buffer.fill(0)
        self.write_pos = 0
        self.filled = 0
