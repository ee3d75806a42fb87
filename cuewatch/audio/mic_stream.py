"""Audio sources that hand timestamped PCM buffers to the detection core."""
from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional

import numpy as np

from cuewatch.errors import NoAccess, UpstreamInterrupted
from cuewatch.utils.helpers import load_audio

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioBuffer:
    samples: np.ndarray
    frame_position: int
    sample_rate: int

    @property
    def timestamp(self) -> float:
        return self.frame_position / self.sample_rate


@dataclass
class MicStream:
    sample_rate: int
    chunk_size: int
    realtime: bool = False
    sleep_factor: float = 1.0

    def from_array(self, data: np.ndarray) -> Generator[AudioBuffer, None, None]:
        data = np.asarray(data, dtype=np.float32)
        total = len(data)
        for idx in range(0, total, self.chunk_size):
            chunk = data[idx : idx + self.chunk_size]
            if len(chunk) < self.chunk_size:
                pad = np.zeros(self.chunk_size - len(chunk), dtype=np.float32)
                chunk = np.concatenate((chunk, pad))
            if self.realtime:
                time.sleep(self.chunk_size / self.sample_rate * self.sleep_factor)
            yield AudioBuffer(chunk, idx, self.sample_rate)

    def from_wav(self, path: str | Path) -> Generator[AudioBuffer, None, None]:
        data, _ = load_audio(path, self.sample_rate)
        return self.from_array(data)

    def live(
        self,
        device: Optional[int | str] = None,
        max_queued: int = 50,
        poll_timeout: float = 1.0,
    ) -> Generator[AudioBuffer, None, None]:
        """Yield buffers from an input device until the generator is closed.

        Opening or losing the device raises ``UpstreamInterrupted``; a refused
        device raises ``NoAccess``.
        """
        import sounddevice as sd

        audio_q: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=max_queued)

        def callback(indata, frames, time_info, status):
            if status:
                logger.debug("Input stream status: %s", status)
            try:
                audio_q.put_nowait(np.array(indata[:, 0], dtype=np.float32))
            except queue.Full:
                # drop newest chunk to keep realtime
                pass

        try:
            stream = sd.InputStream(
                device=device,
                channels=1,
                samplerate=self.sample_rate,
                blocksize=self.chunk_size,
                dtype="float32",
                callback=callback,
            )
        except (PermissionError, sd.PortAudioError) as exc:
            raise _device_error(exc, "open") from exc
        try:
            stream.start()
        except (PermissionError, sd.PortAudioError) as exc:
            stream.close()
            raise _device_error(exc, "start") from exc

        position = 0
        try:
            while True:
                try:
                    chunk = audio_q.get(timeout=poll_timeout)
                except queue.Empty:
                    if not stream.active:
                        raise UpstreamInterrupted("input stream stopped delivering audio")
                    continue
                yield AudioBuffer(chunk, position, self.sample_rate)
                position += len(chunk)
        finally:
            stream.stop()
            stream.close()


def _device_error(exc: Exception, action: str) -> Exception:
    if isinstance(exc, PermissionError):
        return NoAccess(f"microphone access denied: {exc}")
    return UpstreamInterrupted(f"could not {action} input device: {exc}")
