"""
Runtime configuration that can be modified during execution.
Thread-safe configuration store for tunable parameters.
"""

import logging
import os
import threading
from dataclasses import dataclass, fields, replace
from typing import Callable

from . import config

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """
    Runtime-tunable configuration values.
    These can be changed while the application is running.
    """

    # Silence detector
    silence_threshold: float = config.SILENCE_THRESHOLD
    silence_duration_ms: float = config.SILENCE_DURATION_MS
    poll_interval_ms: float = config.POLL_INTERVAL_MS
    analyser_window: int = config.ANALYSER_WINDOW

    # Restart coordinator
    settle_delay_ms: float = config.SETTLE_DELAY_MS

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Build a config, overriding defaults from LISTEN_COPILOT_* variables."""
        return cls(
            silence_threshold=_env_float(
                "LISTEN_COPILOT_SILENCE_THRESHOLD", config.SILENCE_THRESHOLD
            ),
            silence_duration_ms=_env_float(
                "LISTEN_COPILOT_SILENCE_MS", config.SILENCE_DURATION_MS
            ),
            settle_delay_ms=_env_float("LISTEN_COPILOT_SETTLE_MS", config.SETTLE_DELAY_MS),
        )


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, keeping the default if it is malformed."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


class ConfigStore:
    """
    Thread-safe configuration store with change notifications.
    """

    def __init__(self, initial: RuntimeConfig | None = None):
        self._config = initial or RuntimeConfig()
        self._lock = threading.RLock()
        self._listeners: list[Callable[[RuntimeConfig], None]] = []

    def get(self) -> RuntimeConfig:
        """Get a copy of the current configuration."""
        with self._lock:
            return replace(self._config)

    def update(self, **kwargs) -> RuntimeConfig:
        """
        Update configuration values.

        Args:
            **kwargs: Configuration fields to update

        Returns:
            The updated configuration

        Raises:
            KeyError: If a field name is unknown
        """
        known = {f.name for f in fields(RuntimeConfig)}
        unknown = set(kwargs) - known
        if unknown:
            raise KeyError(f"Unknown config field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            self._config = replace(self._config, **kwargs)
            config_copy = self.get()
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(config_copy)
            except Exception:
                logger.exception("Config listener failed")
        return config_copy

    def add_listener(self, callback: Callable[[RuntimeConfig], None]) -> None:
        """Add a listener for configuration changes."""
        with self._lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[RuntimeConfig], None]) -> None:
        """Remove a configuration change listener."""
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)


# Global config store instance
_config_store: ConfigStore | None = None


def get_config_store() -> ConfigStore:
    """Get the global configuration store."""
    global _config_store
    if _config_store is None:
        _config_store = ConfigStore(RuntimeConfig.from_env())
    return _config_store
