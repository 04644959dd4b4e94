"""Unit tests for line-preserving INI edits."""

import pytest

from packscript.ini import IniEditor

SAMPLE = """; system settings
[usb]
usb30_force_enabled = 0

[tesla]
key_combo=L+DDOWN+RS
"""


@pytest.fixture
def ini(volumes):
    return IniEditor(volumes)


@pytest.fixture
def system_ini(sdmc):
    path = sdmc / "config" / "system_settings.ini"
    path.parent.mkdir()
    path.write_text(SAMPLE)
    return path


class TestSetValue:
    def test_update_existing_key(self, ini, system_ini):
        result = ini.set_ini_file_value("sdmc:/config/system_settings.ini", "usb", "usb30_force_enabled", "u8!0x1")
        assert result.ok
        lines = system_ini.read_text().splitlines()
        assert "usb30_force_enabled=u8!0x1" in lines
        assert lines[0] == "; system settings"
        assert "key_combo=L+DDOWN+RS" in lines

    def test_add_key_to_section(self, ini, system_ini):
        assert ini.set_ini_file_value("sdmc:/config/system_settings.ini", "usb", "new_key", "1").ok
        lines = system_ini.read_text().splitlines()
        assert lines.index("new_key=1") == lines.index("usb30_force_enabled = 0") + 1

    def test_add_section(self, ini, system_ini):
        assert ini.set_ini_file_value("sdmc:/config/system_settings.ini", "hbloader", "applet_heap_size", "0x0").ok
        text = system_ini.read_text()
        assert text.endswith("[hbloader]\napplet_heap_size=0x0\n")

    def test_creates_file(self, ini, sdmc):
        assert ini.set_ini_file_value("sdmc:/new/config.ini", "ultrahand", "key_combo", "ZL+ZR").ok
        assert (sdmc / "new" / "config.ini").read_text() == "[ultrahand]\nkey_combo=ZL+ZR\n"

    def test_only_touches_named_section(self, ini, sdmc):
        path = sdmc / "multi.ini"
        path.write_text("[a]\nk=1\n[b]\nk=2\n")
        assert ini.set_ini_file_value("sdmc:/multi.ini", "b", "k", "9").ok
        assert path.read_text() == "[a]\nk=1\n[b]\nk=9\n"


class TestSetKey:
    def test_rename_key(self, ini, system_ini):
        result = ini.set_ini_file_key("sdmc:/config/system_settings.ini", "tesla", "key_combo", "combo")
        assert result.ok
        assert "combo=L+DDOWN+RS" in system_ini.read_text().splitlines()

    def test_missing_key(self, ini, system_ini):
        before = system_ini.read_text()
        assert not ini.set_ini_file_key("sdmc:/config/system_settings.ini", "tesla", "nope", "x").ok
        assert system_ini.read_text() == before

    def test_missing_section(self, ini, system_ini):
        assert not ini.set_ini_file_key("sdmc:/config/system_settings.ini", "nope", "k", "x").ok
