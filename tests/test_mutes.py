"""Tests for the mute registry."""
from alerts.mutes import MuteRegistry, MUTE_STATE_KEY, CATEGORY_MUTES_KEY
from utils.constants import HOUR_MS, INDEFINITE_MUTE_MS, MINUTE_MS


def test_global_mute_with_duration(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_global(30 * MINUTE_MS)
    assert mutes.is_globally_muted()
    clock.advance(30 * MINUTE_MS)
    assert not mutes.is_globally_muted()


def test_indefinite_mute_is_far_future_timestamp(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_global(None)
    assert mutes.state.mute_until == clock.now + INDEFINITE_MUTE_MS
    clock.advance(365 * 24 * HOUR_MS)
    assert mutes.is_globally_muted()


def test_unmute(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_global(HOUR_MS)
    mutes.unmute()
    assert not mutes.is_globally_muted()
    assert temp_db.get_value(MUTE_STATE_KEY) == {"is_muted": False, "mute_until": None}


def test_category_mute_and_expiry(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_category("resource_cpu", HOUR_MS)
    assert mutes.is_category_muted("resource_cpu")
    assert not mutes.is_category_muted("resource_memory")
    clock.advance(HOUR_MS)
    assert not mutes.is_category_muted("resource_cpu")


def test_unmute_category_and_unmute_all(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_category("epoch", HOUR_MS)
    mutes.mute_category("resource_disk", HOUR_MS)
    mutes.mute_global(HOUR_MS)
    mutes.unmute_category("epoch")
    assert not mutes.is_category_muted("epoch")
    assert mutes.is_category_muted("resource_disk")
    mutes.unmute_all()
    assert not mutes.is_globally_muted()
    assert mutes.muted_categories() == {}


def test_state_survives_restart(temp_db, clock):
    first = MuteRegistry(temp_db, clock=clock)
    first.mute_global(2 * HOUR_MS)
    first.mute_category("observer_low_weight", HOUR_MS)

    restored = MuteRegistry(temp_db, clock=clock)
    assert restored.is_globally_muted()
    assert restored.is_category_muted("observer_low_weight")


def test_sweep_removes_expired_and_persists(temp_db, clock):
    mutes = MuteRegistry(temp_db, clock=clock)
    mutes.mute_global(MINUTE_MS)
    mutes.mute_category("a", MINUTE_MS)
    mutes.mute_category("b", HOUR_MS)
    clock.advance(2 * MINUTE_MS)

    assert mutes.sweep() == 2
    assert not mutes.state.is_muted
    assert temp_db.get_value(CATEGORY_MUTES_KEY) == {"b": mutes.category_mutes["b"]}
    assert mutes.sweep() == 0


def test_works_without_database(clock):
    mutes = MuteRegistry(None, clock=clock)
    mutes.mute_category("x", MINUTE_MS)
    assert mutes.is_category_muted("x")


def test_malformed_category_entries_are_skipped(temp_db, clock):
    until = clock.now + HOUR_MS
    temp_db.set_value(CATEGORY_MUTES_KEY, {
        "resource_cpu": None, "resource_memory": "soon", "resource_disk": until,
    })
    mutes = MuteRegistry(temp_db, clock=clock)
    assert mutes.category_mutes == {"resource_disk": until}
    assert not mutes.is_category_muted("resource_cpu")
    assert mutes.is_category_muted("resource_disk")


def test_malformed_blobs_restore_defaults(temp_db, clock):
    temp_db.set_value(MUTE_STATE_KEY, "garbage")
    temp_db.set_value(CATEGORY_MUTES_KEY, ["resource_cpu"])
    mutes = MuteRegistry(temp_db, clock=clock)
    assert not mutes.is_globally_muted()
    assert mutes.category_mutes == {}


def test_muted_state_without_valid_expiry_is_ignored(temp_db, clock):
    temp_db.set_value(MUTE_STATE_KEY, {"is_muted": True, "mute_until": "soon"})
    mutes = MuteRegistry(temp_db, clock=clock)
    assert not mutes.state.is_muted
    assert not mutes.is_globally_muted()
