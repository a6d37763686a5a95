"""
Unit tests for listen_copilot.core.runtime_config.
"""

import logging
from unittest.mock import MagicMock

import pytest

from listen_copilot.core import config
from listen_copilot.core.runtime_config import ConfigStore, RuntimeConfig


class TestRuntimeConfig:
    def test_defaults(self):
        cfg = RuntimeConfig()
        assert cfg.silence_threshold == 0.01
        assert cfg.silence_duration_ms == 800
        assert cfg.settle_delay_ms == 50
        assert cfg.analyser_window == config.ANALYSER_WINDOW

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LISTEN_COPILOT_SILENCE_THRESHOLD", "0.05")
        monkeypatch.setenv("LISTEN_COPILOT_SILENCE_MS", "1200")
        cfg = RuntimeConfig.from_env()
        assert cfg.silence_threshold == 0.05
        assert cfg.silence_duration_ms == 1200
        assert cfg.settle_delay_ms == config.SETTLE_DELAY_MS

    def test_from_env_ignores_malformed_values(self, monkeypatch, caplog):
        monkeypatch.setenv("LISTEN_COPILOT_SILENCE_MS", "fast")
        monkeypatch.setenv("LISTEN_COPILOT_SETTLE_MS", "75")
        with caplog.at_level(logging.WARNING):
            cfg = RuntimeConfig.from_env()
        assert cfg.silence_duration_ms == config.SILENCE_DURATION_MS
        assert cfg.settle_delay_ms == 75
        assert "LISTEN_COPILOT_SILENCE_MS" in caplog.text


class TestConfigStore:
    def test_get_returns_copy(self):
        store = ConfigStore()
        cfg = store.get()
        cfg.silence_threshold = 1.0
        assert store.get().silence_threshold == 0.01

    def test_update_notifies_listeners(self):
        store = ConfigStore()
        listener = MagicMock()
        store.add_listener(listener)
        store.update(silence_threshold=0.02)
        listener.assert_called_once()
        assert listener.call_args[0][0].silence_threshold == 0.02

    def test_failing_listener_does_not_block_others(self):
        store = ConfigStore()
        broken = MagicMock(side_effect=RuntimeError("boom"))
        listener = MagicMock()
        store.add_listener(broken)
        store.add_listener(listener)
        store.update(settle_delay_ms=10)
        listener.assert_called_once()

    def test_unknown_field(self):
        with pytest.raises(KeyError):
            ConfigStore().update(volume=11)

    def test_remove_listener(self):
        store = ConfigStore()
        listener = MagicMock()
        store.add_listener(listener)
        store.remove_listener(listener)
        store.update(settle_delay_ms=10)
        listener.assert_not_called()
