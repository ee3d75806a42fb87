import pytest

from cuewatch.errors import InvalidConfiguration
from cuewatch.system.config import LabelThresholds
from cuewatch.system.detection_state import DetectionState, DetectionStateMachine


def make_machine(presence=0.8, absence=0.3, start=3, end=30):
    return DetectionStateMachine("siren", LabelThresholds(presence, absence), start, end)


def detected_machine(**kwargs):
    machine = make_machine(**kwargs)
    while not machine.is_detected:
        machine.advance(1.0)
    return machine


def test_initial_record():
    record = make_machine().record
    assert record.label == "siren"
    assert record.is_detected is False
    assert record.current_confidence == 0.0
    assert record.presence_streak == 0
    assert record.absence_streak == 0


def test_detection_fires_on_the_window_that_reaches_the_count():
    machine = make_machine(start=3)
    assert machine.advance(0.8).is_detected is False
    assert machine.advance(0.8).is_detected is False
    record = machine.advance(0.8)
    assert record.is_detected is True
    assert machine.state is DetectionState.DETECTED


def test_single_dip_resets_presence_streak():
    machine = make_machine(start=10)
    for _ in range(9):
        machine.advance(0.9)
    record = machine.advance(0.79)
    assert record.presence_streak == 0
    for _ in range(9):
        record = machine.advance(0.9)
    assert record.is_detected is False
    assert record.presence_streak == 9


def test_concrete_start_and_end_scenario():
    machine = make_machine(presence=0.8, absence=0.3, start=3, end=30)
    for _ in range(3):
        record = machine.advance(0.9)
    assert record.is_detected is True
    for _ in range(29):
        record = machine.advance(0.2)
    assert record.is_detected is True
    assert record.absence_streak == 29
    record = machine.advance(0.2)
    assert record.is_detected is False
    assert record.presence_streak == 0


def test_brief_recovery_resets_absence_streak():
    machine = detected_machine(end=5)
    for _ in range(4):
        machine.advance(0.1)
    record = machine.advance(0.3)
    assert record.absence_streak == 0
    assert record.is_detected is True


def test_dead_band_resets_streaks_without_transition():
    machine = make_machine(start=3)
    machine.advance(0.9)
    machine.advance(0.9)
    record = machine.advance(0.5)
    assert record.presence_streak == 0
    assert record.is_detected is False

    machine = detected_machine(end=3)
    machine.advance(0.1)
    machine.advance(0.1)
    record = machine.advance(0.5)
    assert record.absence_streak == 0
    assert record.is_detected is True


def test_current_confidence_tracks_latest_input():
    machine = make_machine()
    for value in (0.1, 0.95, 0.42, 0.0):
        assert machine.advance(value).current_confidence == value


def test_raw_confidence_feeds_meter_only():
    machine = make_machine(start=1)
    record = machine.advance(1.0, raw_confidence=0.37)
    assert record.is_detected is True
    assert record.current_confidence == 0.37


def test_reset_returns_to_initial_state():
    machine = detected_machine()
    machine.reset()
    assert machine.record == make_machine().record


def test_records_are_immutable_copies():
    machine = make_machine()
    record = machine.advance(0.9)
    machine.advance(0.9)
    assert record.presence_streak == 1


@pytest.mark.parametrize("start,end", [(0, 1), (1, 0), (-2, 3)])
def test_rejects_non_positive_counts(start, end):
    with pytest.raises(InvalidConfiguration):
        make_machine(start=start, end=end)


@pytest.mark.parametrize("presence,absence", [(0.3, 0.3), (0.3, 0.5), (1.2, 0.1)])
def test_rejects_bad_thresholds(presence, absence):
    with pytest.raises(InvalidConfiguration):
        LabelThresholds(presence, absence)
