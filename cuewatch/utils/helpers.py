"""Utility helpers shared by multiple CueWatch subsystems."""
from __future__ import annotations

import math
import numbers
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import numpy as np
import soundfile as sf


FloatArray = np.ndarray


def ensure_mono(signal: FloatArray) -> FloatArray:
    """Ensure waveform is mono by averaging channels if necessary."""
    if signal.ndim == 1:
        return signal
    return signal.mean(axis=1)


def to_float_pcm(buffer: Any) -> Optional[FloatArray]:
    """Convert a raw PCM buffer to a mono float64 array on a [-1, 1] scale.

    Integer buffers are scaled by their dtype range; unsigned PCM is
    re-centred on its midpoint first. Returns ``None`` for
    anything that is not a non-empty, finite, numeric buffer.
    """
    if buffer is None:
        return None
    try:
        data = np.asarray(buffer)
    except (TypeError, ValueError):
        return None
    if data.size == 0 or data.ndim == 0 or data.ndim > 2:
        return None
    if np.issubdtype(data.dtype, np.unsignedinteger):
        half = (float(np.iinfo(data.dtype).max) + 1.0) / 2.0
        data = (data.astype(np.float64) - half) / half
    elif np.issubdtype(data.dtype, np.integer):
        scale = float(np.iinfo(data.dtype).max) + 1.0
        data = data.astype(np.float64) / scale
    elif np.issubdtype(data.dtype, np.floating):
        data = data.astype(np.float64)
    else:
        return None
    data = ensure_mono(data)
    if not np.all(np.isfinite(data)):
        return None
    return data


def rms(signal: FloatArray) -> float:
    """Root-mean-square amplitude of a float signal."""
    if signal.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(signal * signal)))


def load_audio(path: str | Path, target_sr: int) -> Tuple[FloatArray, int]:
    """Load an audio file and optionally resample using librosa."""
    data, sr = sf.read(str(path), always_2d=False)
    data = ensure_mono(data.astype(np.float32))
    if sr == target_sr:
        return data, sr
    # Lazy import to avoid librosa dependency unless resampling needed.
    import librosa

    resampled = librosa.resample(y=data, orig_sr=sr, target_sr=target_sr)
    return resampled.astype(np.float32), target_sr


def coerce_confidence(value: Any) -> float:
    """Clamp a classifier score into [0, 1]; anything unusable becomes 0."""
    if not isinstance(value, numbers.Real):
        return 0.0
    conf = float(value)
    if not math.isfinite(conf):
        return 0.0
    return min(1.0, max(0.0, conf))


def sorted_labels(labels: Iterable[str]) -> Tuple[str, ...]:
    """Deduplicate and order labels by identifier."""
    return tuple(sorted(set(labels)))
