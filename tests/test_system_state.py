import struct

import pytest

from flowpump.system_state import MAGIC, VERSION, Eeprom, LEDColour, StateStore


def test_commit_then_load_round_trip():
    eeprom = Eeprom(64)
    store = StateStore(eeprom)
    store.set_setpoint(500.0)
    store.set_pump_enabled(True)
    store.commit_persistent()
    assert store.dirty is False

    fresh = StateStore(eeprom)
    fresh.load_persistent()
    assert fresh.state.setpoint == 500.0
    assert fresh.state.pump_enabled is True


def test_blob_starts_with_magic_and_version():
    eeprom = Eeprom(64)
    store = StateStore(eeprom)
    store.set_setpoint(250.0)
    store.commit_persistent()
    assert eeprom.read(0, 4) == struct.pack("<I", MAGIC)
    assert eeprom.read(4, 1) == bytes([VERSION])


def test_commit_without_changes_writes_nothing():
    eeprom = Eeprom(32)
    before = eeprom.read(0, 32)
    StateStore(eeprom).commit_persistent()
    assert eeprom.read(0, 32) == before


def test_load_from_erased_eeprom_keeps_defaults():
    store = StateStore(Eeprom(32))
    store.load_persistent()
    assert store.state.setpoint == 0.0
    assert store.state.pump_enabled is False


def test_load_rejects_wrong_version():
    eeprom = Eeprom(32)
    store = StateStore(eeprom)
    store.set_setpoint(500.0)
    store.commit_persistent()
    eeprom.write(4, bytes([VERSION + 1]))
    fresh = StateStore(eeprom)
    fresh.load_persistent()
    assert fresh.state.setpoint == 0.0


def test_live_setters_do_not_mark_dirty():
    store = StateStore(Eeprom(32))
    store.add_volume(12.5)
    store.add_volume(2.5)
    store.add_mass(0.25)
    assert store.state.volume_ul == 15.0
    assert store.state.mass_g == 0.25
    assert store.dirty is False


def test_setpoint_marks_dirty():
    store = StateStore(Eeprom(32))
    store.set_setpoint(10.0)
    assert store.dirty is True


def test_default_led_colour_is_off():
    store = StateStore(Eeprom(32))
    assert store.state.led_colour is LEDColour.OFF


def test_eeprom_out_of_range_raises():
    eeprom = Eeprom(8)
    with pytest.raises(IndexError):
        eeprom.read(4, 8)
    with pytest.raises(IndexError):
        eeprom.write(7, b"\x00\x00")


def test_eeprom_rejects_non_positive_size():
    with pytest.raises(ValueError):
        Eeprom(0)


def test_eeprom_too_small_for_blob_raises_on_load():
    with pytest.raises(IndexError):
        StateStore(Eeprom(4)).load_persistent()