"""The smoke script logs through `get_logger`, so `LOG_LEVEL` controls it."""

from __future__ import annotations

import importlib.util
import json
import logging
import sys
from pathlib import Path
from types import ModuleType

import pytest

from deployplan.core.settings import load_settings

SMOKE = Path(__file__).resolve().parents[1] / "scripts" / "smoke.py"


def _load_smoke() -> ModuleType:
    spec = importlib.util.spec_from_file_location("deployplan_smoke_script", SMOKE)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_smoke_logger_follows_log_level(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    load_settings.cache_clear()
    try:
        smoke = _load_smoke()
        assert smoke.logger.name == "deployplan.smoke"
        assert smoke.logger.level == logging.WARNING
        assert smoke.logger.handlers

        monkeypatch.setattr(sys, "argv", ["smoke.py"])
        smoke.main()
        payload = json.loads(capsys.readouterr().out)
        assert payload["name"] == "smoke"
        assert payload["order"] == ["BankModule#Bank", "VaultModule#Vault"]
    finally:
        load_settings.cache_clear()
