import pytest

from cuewatch.errors import InvalidConfiguration
from cuewatch.system.config import SmoothingConfig
from cuewatch.system.label_smoother import LabelSmoother


def feed(smoother, picks):
    winner = None
    for pick in picks:
        winner = smoother.push_pick(pick)
    return winner


def test_majority_winner():
    smoother = LabelSmoother(SmoothingConfig(window=5, required_majority=3))
    assert feed(smoother, ["A", "A", "A", "B", "B"]) == "A"


def test_no_label_reaches_majority():
    smoother = LabelSmoother(SmoothingConfig(window=5, required_majority=3))
    assert feed(smoother, ["A", "B", "A", "B", None]) is None


def test_empty_smoother_has_no_winner():
    smoother = LabelSmoother(SmoothingConfig(window=5, required_majority=3))
    assert smoother.current_winner is None
    assert smoother.push_pick(None) is None


def test_count_ties_break_lexicographically():
    smoother = LabelSmoother(SmoothingConfig(window=4, required_majority=2))
    assert feed(smoother, ["B", "A", "B", "A"]) == "A"


def test_oldest_pick_is_evicted():
    smoother = LabelSmoother(SmoothingConfig(window=3, required_majority=2))
    assert feed(smoother, ["A", "A"]) == "A"
    assert feed(smoother, ["B", "B"]) == "B"
    assert smoother.picks == ("A", "B", "B")


def test_per_label_required_hits():
    smoother = LabelSmoother(SmoothingConfig(window=5, required_majority=2, required_hits={"alarm": 4}))
    assert feed(smoother, ["alarm", "alarm", "alarm"]) is None
    assert smoother.push_pick("alarm") == "alarm"


def test_pick_uses_top_confidence():
    smoother = LabelSmoother(SmoothingConfig())
    assert smoother.pick_for({"dog": 0.4, "car": 0.9}) == "car"


def test_pick_ties_break_lexicographically():
    smoother = LabelSmoother(SmoothingConfig())
    assert smoother.pick_for({"knock": 0.7, "bell": 0.7}) == "bell"


def test_pick_below_floor_is_no_winner():
    smoother = LabelSmoother(SmoothingConfig(confidence_floor=0.5, label_floors={"speech": 0.8}))
    assert smoother.pick_for({"dog": 0.4}) is None
    assert smoother.pick_for({"dog": 0.6}) == "dog"
    assert smoother.pick_for({"speech": 0.7}) is None


def test_pick_needs_margin_over_runner_up():
    smoother = LabelSmoother(SmoothingConfig(min_margin=0.25))
    assert smoother.pick_for({"dog": 0.6, "car": 0.5}) is None
    assert smoother.pick_for({"dog": 0.8, "car": 0.1}) == "dog"


def test_pick_from_empty_or_malformed_result():
    smoother = LabelSmoother(SmoothingConfig())
    assert smoother.pick_for({}) is None
    assert smoother.pick_for(None) is None


def test_effective_confidences():
    assert LabelSmoother.effective_confidences(["a", "b", "c"], "b") == {"a": 0.0, "b": 1.0, "c": 0.0}
    assert LabelSmoother.effective_confidences(["a", "b"], None) == {"a": 0.0, "b": 0.0}


def test_reset_clears_history():
    smoother = LabelSmoother(SmoothingConfig(window=3, required_majority=1))
    smoother.push_pick("a")
    smoother.reset()
    assert smoother.picks == ()
    assert smoother.current_winner is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window": 3, "required_majority": 4},
        {"window": 0, "required_majority": 1},
        {"window": 3, "required_majority": 0},
        {"window": 3, "required_majority": 2, "required_hits": {"a": 5}},
        {"confidence_floor": 1.5},
    ],
)
def test_rejects_invalid_smoothing(kwargs):
    with pytest.raises(InvalidConfiguration):
        SmoothingConfig(**kwargs)
