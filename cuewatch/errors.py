"""Error kinds surfaced by the detection core."""
from __future__ import annotations


class CueWatchError(Exception):
    """Base class for every error raised by cuewatch."""


class InvalidConfiguration(CueWatchError, ValueError):
    """Threshold ordering, count or range violation in a configuration."""


class UpstreamInterrupted(CueWatchError, RuntimeError):
    """The audio or classification source failed or was interrupted."""


class NoAccess(CueWatchError, PermissionError):
    """The audio layer refused access to the input device."""
