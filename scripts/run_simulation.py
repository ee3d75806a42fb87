"""Run a CueWatch scenario (or a WAV file) through the detection pipeline."""
from __future__ import annotations

import argparse

from cuewatch.audio.mic_stream import MicStream
from cuewatch.simulation.evaluation import detection_onsets, evaluate
from cuewatch.simulation.event_player import EventPlayer
from cuewatch.simulation.scenarios import SCENARIOS
from cuewatch.simulation.tone_classifier import ToneClassifier
from cuewatch.system.classification_source import WindowedClassificationSource, known_labels
from cuewatch.system.config import PipelineConfiguration, SmoothingConfig
from cuewatch.system.pipeline import DetectionPipeline
from cuewatch.utils.constants import AUDIO
from cuewatch.utils.logging_config import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run CueWatch detection simulations.")
    parser.add_argument("scenario", nargs="?", choices=SCENARIOS.keys(), default="indoor", help="Scenario name")
    parser.add_argument("--wav", help="Replay a WAV file instead of a synthetic scenario")
    parser.add_argument("--smoothing", action="store_true", help="Enable majority-vote label smoothing")
    parser.add_argument("--window", type=float, default=0.5, help="Analysis window in seconds")
    parser.add_argument("--overlap", type=float, default=0.5, help="Window overlap fraction")
    parser.add_argument("--end-windows", type=int, default=4, help="Low windows needed to end a detection")
    parser.add_argument("--silence-as-absence", action="store_true", help="Advance on gated windows")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    setup_logging(args.log_level.upper())

    classifier = ToneClassifier()
    config = PipelineConfiguration(
        monitored_labels=known_labels(classifier),
        window_duration=args.window,
        overlap=args.overlap,
        absence_measurements_to_end=args.end_windows,
        smoothing=SmoothingConfig(confidence_floor=0.3) if args.smoothing else None,
    )
    source = WindowedClassificationSource(classifier, config, silence_as_absence=args.silence_as_absence)

    snapshots = []
    pipeline = DetectionPipeline()
    pipeline.subscribe(snapshots.append)
    pipeline.on_terminal(lambda err: print(f"Stream ended ({'ok' if err is None else err})"))
    pipeline.start(config)

    if args.wav:
        pipeline.run(source.results(MicStream(AUDIO.sample_rate, AUDIO.chunk_size).from_wav(args.wav)))
        for label, timestamp in detection_onsets(snapshots):
            print(f"{timestamp:8.2f}s  {label}")
        return

    player = EventPlayer(SCENARIOS[args.scenario]())
    pipeline.run(source.results(player.stream()))
    report = evaluate(
        snapshots,
        player.event_schedule(),
        duration_s=len(player.timeline) / player.sample_rate,
    )
    print(f"Windows classified: {source.windows_classified}, gated: {source.windows_gated}")
    print(f"Latency summary: {report.summary()}")
    print(f"Missed events: {report.misses}")
    print(f"False onsets per minute: {report.false_onsets_per_minute:.2f}")


if __name__ == "__main__":
    main()
