import pytest

from flowpump.volume_tracker import VolumeTracker


def test_one_minute_at_rate_gives_rate_volume():
    tracker = VolumeTracker()
    tracker.update(600.0, 60000)
    assert tracker.volume_ul() == pytest.approx(600.0)


def test_updates_accumulate_linearly():
    split = VolumeTracker()
    for _ in range(10):
        split.update(120.0, 100)
    whole = VolumeTracker()
    whole.update(120.0, 1000)
    assert split.volume_ul() == pytest.approx(whole.volume_ul())


def test_mass_uses_density():
    tracker = VolumeTracker(0.97)
    tracker.update(1000.0, 60000)
    assert tracker.mass_g() == pytest.approx(tracker.volume_ul() * 0.97 / 1000.0)


def test_unit_density_mass_is_volume_over_thousand():
    tracker = VolumeTracker()
    tracker.update(2000.0, 30000)
    assert tracker.mass_g() == pytest.approx(tracker.volume_ul() / 1000.0)


def test_reset_clears_totals():
    tracker = VolumeTracker(0.97)
    tracker.update(500.0, 5000)
    tracker.reset()
    assert tracker.volume_ul() == 0.0
    assert tracker.mass_g() == 0.0


def test_negative_interval_rejected():
    with pytest.raises(ValueError):
        VolumeTracker().update(100.0, -1)