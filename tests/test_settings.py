from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from inkwell import settings


def test_timezone_from_env(monkeypatch):
    monkeypatch.setenv("INKWELL_TIMEZONE", "Europe/Paris")
    assert settings.get_timezone() == ZoneInfo("Europe/Paris")


def test_unknown_timezone_falls_back_to_utc_with_warning(monkeypatch, caplog):
    monkeypatch.setenv("INKWELL_TIMEZONE", "Mars/Olympus_Mons")

    with caplog.at_level(logging.WARNING, logger="inkwell.settings"):
        tz = settings.get_timezone()

    assert tz == ZoneInfo("UTC")
    assert "Mars/Olympus_Mons" in caplog.text
