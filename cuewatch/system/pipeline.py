"""Orchestrates smoothing and per-label state machines, one window at a time."""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from cuewatch.errors import CueWatchError, InvalidConfiguration, UpstreamInterrupted
from cuewatch.system.classification_source import ClassificationResult
from cuewatch.system.config import PipelineConfiguration
from cuewatch.system.detection_state import DetectionRecord, DetectionStateMachine
from cuewatch.system.label_smoother import LabelSmoother
from cuewatch.utils.helpers import sorted_labels

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[["Snapshot"], None]
TerminalCallback = Callable[[Optional[BaseException]], None]

_STOP = object()


@dataclass(frozen=True)
class Snapshot:
    """State of every monitored label after one window, ordered by label."""

    records: Tuple[Tuple[str, DetectionRecord], ...]
    window_index: int
    timestamp: Optional[float] = None

    def __iter__(self) -> Iterator[Tuple[str, DetectionRecord]]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, label: object) -> bool:
        return any(name == label for name, _ in self.records)

    def __getitem__(self, label: str) -> DetectionRecord:
        for name, record in self.records:
            if name == label:
                return record
        raise KeyError(label)

    def get(self, label: str, default: Optional[DetectionRecord] = None) -> Optional[DetectionRecord]:
        try:
            return self[label]
        except KeyError:
            return default

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.records)

    @property
    def detected_labels(self) -> Tuple[str, ...]:
        return tuple(name for name, record in self.records if record.is_detected)

    def as_dict(self) -> Dict[str, DetectionRecord]:
        return dict(self.records)


class DetectionPipeline:
    """Turn classification results into debounced per-label snapshots.

    Windows either go through :meth:`process_window` directly or are queued
    with :meth:`submit` onto a single consumer lane owned by the current run.
    All state mutation happens under ``_state_lock``; :meth:`stop` takes the
    same lock before retiring the run, so a window that started earlier has
    finished by the time ``stop`` returns and later ones are discarded.
    """

    def __init__(self, max_queued: int = 256) -> None:
        self.max_queued = max_queued
        self._state_lock = threading.RLock()
        self._lane_lock = threading.Lock()
        self._listeners_lock = threading.Lock()
        self._local = threading.local()
        self._subscribers: List[SnapshotCallback] = []
        self._terminal_listeners: List[TerminalCallback] = []

        self._running = False
        self._generation = 0
        self._queue: Optional[queue.Queue] = None
        self._worker: Optional[threading.Thread] = None

        self._config: Optional[PipelineConfiguration] = None
        self._order: Tuple[str, ...] = ()
        self._machines: Dict[str, DetectionStateMachine] = {}
        self._smoother: Optional[LabelSmoother] = None
        self._window_index = 0
        self._latest: Optional[Snapshot] = None

    # ------------------------------------------------------------------ state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def configuration(self) -> Optional[PipelineConfiguration]:
        return self._config

    @property
    def latest(self) -> Optional[Snapshot]:
        return self._latest

    # ------------------------------------------------------------ subscribers

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        with self._listeners_lock:
            self._subscribers.append(callback)
        return lambda: self._remove(self._subscribers, callback)

    def on_terminal(self, callback: TerminalCallback) -> Callable[[], None]:
        with self._listeners_lock:
            self._terminal_listeners.append(callback)
        return lambda: self._remove(self._terminal_listeners, callback)

    def _remove(self, listeners: list, callback: Callable) -> None:
        with self._listeners_lock:
            if callback in listeners:
                listeners.remove(callback)

    # -------------------------------------------------------------- lifecycle

    def start(self, config: PipelineConfiguration) -> None:
        """Begin a fresh run. Any previous run is stopped first."""
        if not isinstance(config, PipelineConfiguration):
            raise InvalidConfiguration(f"expected PipelineConfiguration, got {type(config).__name__}")
        self.stop()

        order = sorted_labels(config.monitored_labels)
        machines = {
            label: DetectionStateMachine(
                label,
                config.thresholds_for(label),
                config.presence_measurements_to_start,
                config.absence_measurements_to_end,
            )
            for label in order
        }
        smoother = LabelSmoother(config.smoothing) if config.smoothing is not None else None

        with self._state_lock:
            # A concurrent start may have slipped in after our stop().
            self._retire_lane()
            self._config = config
            self._order = order
            self._machines = machines
            self._smoother = smoother
            self._window_index = 0
            self._latest = None
            with self._lane_lock:
                self._generation += 1
                lane: queue.Queue = queue.Queue(maxsize=self.max_queued)
                worker = threading.Thread(
                    target=self._drain,
                    args=(self._generation, lane),
                    name=f"cuewatch-lane-{self._generation}",
                    daemon=True,
                )
                self._queue = lane
                self._worker = worker
                self._running = True
            worker.start()
        logger.info(
            "Pipeline started: %d labels, smoothing=%s, hop=%.3fs",
            len(order),
            "on" if smoother is not None else "off",
            config.hop_duration,
        )

    def stop(self) -> None:
        """Stop the current run. Safe to call repeatedly or before start."""
        self._stop_run()

    def _stop_run(self) -> bool:
        with self._state_lock:
            worker = self._retire_lane()
            if worker is None:
                return False
            self._machines = {}
            self._order = ()
            self._smoother = None
            self._config = None
        # The lane may be blocked on _state_lock, which this thread holds while
        # publishing; the generation bump already keeps it from running on.
        if worker is not threading.current_thread() and not self._publishing():
            worker.join()
        logger.info("Pipeline stopped after %d windows", self._window_index)
        return True

    def _retire_lane(self) -> Optional[threading.Thread]:
        with self._lane_lock:
            if not self._running:
                return None
            self._running = False
            self._generation += 1
            worker, lane = self._worker, self._queue
            self._worker = None
            self._queue = None
        if lane is not None:
            try:
                lane.put_nowait(_STOP)
            except queue.Full:
                # The lane notices the generation change on its next item.
                pass
        return worker

    # ------------------------------------------------------------ terminal

    def fail(self, error: BaseException) -> BaseException:
        """Report a terminal upstream error once and stop the run."""
        if isinstance(error, (CueWatchError, PermissionError)):
            reported = error
        else:
            reported = UpstreamInterrupted(str(error) or type(error).__name__)
            reported.__cause__ = error
        if self._stop_run():
            logger.warning("Pipeline terminated by upstream error: %s", reported)
            self._notify_terminal(reported)
        return reported

    def finish(self) -> None:
        """Upstream ended normally: notify terminal listeners and stop."""
        if self._stop_run():
            logger.info("Upstream finished")
            self._notify_terminal(None)

    def _notify_terminal(self, error: Optional[BaseException]) -> None:
        with self._listeners_lock:
            listeners = list(self._terminal_listeners)
        for callback in listeners:
            try:
                callback(error)
            except Exception:
                logger.exception("Terminal listener %r failed", callback)

    # ---------------------------------------------------------------- windows

    def process_window(self, result: Any) -> Snapshot:
        """Advance every monitored label by one window and publish the snapshot."""
        snapshot = self._process(result, None)
        if snapshot is None:
            raise RuntimeError("pipeline is not running")
        return snapshot

    def submit(self, result: Any) -> bool:
        """Queue a window for the consumer lane. Returns False if it was dropped."""
        with self._lane_lock:
            if not self._running or self._queue is None:
                logger.debug("Dropping window submitted while stopped")
                return False
            try:
                self._queue.put_nowait(result)
            except queue.Full:
                logger.warning("Consumer lane full, dropping window")
                return False
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted window has been handled."""
        lane = self._queue
        if lane is None:
            return True
        with lane.all_tasks_done:
            return lane.all_tasks_done.wait_for(lambda: not lane.unfinished_tasks, timeout)

    def run(self, results: Iterable[Any]) -> int:
        """Drive a classification source on the calling thread until it ends.

        An exception raised by the source becomes a terminal error; running
        out of results is a normal finish. Returns the number of windows
        processed.
        """
        processed = 0
        iterator = iter(results)
        while self._running:
            try:
                result = next(iterator)
            except StopIteration:
                self.finish()
                break
            except Exception as exc:
                self.fail(exc)
                break
            if self._process(result, None) is None:
                break
            processed += 1
        return processed

    def _drain(self, generation: int, lane: queue.Queue) -> None:
        try:
            while True:
                item = lane.get()
                try:
                    if item is _STOP or self._process(item, generation) is None:
                        return
                finally:
                    lane.task_done()
        finally:
            while True:
                try:
                    lane.get_nowait()
                except queue.Empty:
                    break
                lane.task_done()

    def _publishing(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    def _process(self, raw: Any, generation: Optional[int]) -> Optional[Snapshot]:
        with self._state_lock:
            if not self._running or (generation is not None and generation != self._generation):
                return None
            result = ClassificationResult.coerce(raw)
            if self._smoother is not None:
                winner = self._smoother.push(result)
                effective = LabelSmoother.effective_confidences(self._order, winner)
                records = tuple(
                    (label, self._machines[label].advance(effective[label], raw_confidence=result.confidence(label)))
                    for label in self._order
                )
            else:
                records = tuple(
                    (label, self._machines[label].advance(result.confidence(label))) for label in self._order
                )
            snapshot = Snapshot(records, self._window_index, result.timestamp)
            self._window_index += 1
            self._latest = snapshot
            self._local.depth = getattr(self._local, "depth", 0) + 1
            try:
                self._publish(snapshot)
            finally:
                self._local.depth -= 1
            return snapshot

    def _publish(self, snapshot: Snapshot) -> None:
        with self._listeners_lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber %r failed", callback)
