"""Listen on the microphone and print detection changes for tone labels."""
from __future__ import annotations

import argparse

from cuewatch.audio.mic_stream import MicStream
from cuewatch.simulation.tone_classifier import ToneClassifier
from cuewatch.system.classification_source import WindowedClassificationSource, known_labels
from cuewatch.system.config import PipelineConfiguration
from cuewatch.system.pipeline import DetectionPipeline, Snapshot
from cuewatch.utils.constants import AUDIO
from cuewatch.utils.logging_config import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Live CueWatch detection from the default input device.")
    parser.add_argument("--device", default=None, help="sounddevice input device")
    parser.add_argument("--energy-floor", type=float, default=AUDIO.energy_floor)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level.upper())

    classifier = ToneClassifier()
    config = PipelineConfiguration(
        monitored_labels=known_labels(classifier),
        window_duration=0.5,
        overlap=0.5,
        energy_floor=args.energy_floor,
        absence_measurements_to_end=4,
    )
    source = WindowedClassificationSource(classifier, config, silence_as_absence=True)
    pipeline = DetectionPipeline()

    previous: dict[str, bool] = {}

    def show(snapshot: Snapshot) -> None:
        for label, record in snapshot:
            if record.is_detected != previous.get(label, False):
                state = "ON " if record.is_detected else "off"
                print(f"[{state}] {label:<12} conf={record.current_confidence:.2f}")
            previous[label] = record.is_detected

    pipeline.subscribe(show)
    pipeline.on_terminal(lambda err: print("Stopped." if err is None else f"Stopped: {err}"))
    pipeline.start(config)

    print("Listening... Ctrl+C to stop")
    mic = MicStream(AUDIO.sample_rate, AUDIO.chunk_size)
    try:
        for buffer in mic.live(device=args.device):
            for result in source.feed(buffer):
                pipeline.submit(result)
    except KeyboardInterrupt:
        pipeline.finish()
    except Exception as exc:
        # Library errors pass through unchanged, anything else is wrapped.
        pipeline.fail(exc)


if __name__ == "__main__":
    main()
