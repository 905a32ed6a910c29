"""
Registry configuration.

Settings can be built from a dict, loaded from a YAML file, or read from
environment variables:

    # etc/shutdown.yaml
    shutdown_handler:
      on_error: isolate
      signals: [SIGTERM, SIGHUP]

    SHUTDOWN_HANDLER_ON_ERROR=abort
    SHUTDOWN_HANDLER_SIGNALS=SIGTERM,SIGHUP
"""

import logging
import os
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError

# Maximum config file size (1MB)
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

ENV_PREFIX = "SHUTDOWN_HANDLER_"
CONFIG_SECTION = "shutdown_handler"

ON_ERROR_ISOLATE = "isolate"
ON_ERROR_ABORT = "abort"
ON_ERROR_POLICIES = (ON_ERROR_ISOLATE, ON_ERROR_ABORT)

UNTRAPPABLE_SIGNALS = frozenset({"SIGKILL", "SIGSTOP"})


def _validate_on_error(value: Any) -> str:
    if not isinstance(value, str) or value.lower() not in ON_ERROR_POLICIES:
        raise ConfigError(
            f"Invalid error policy '{value}'. Must be one of: "
            f"{', '.join(ON_ERROR_POLICIES)}"
        )
    return value.lower()


def _validate_signals(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [v.strip() for v in value.split(",") if v.strip()]
    if not isinstance(value, list | tuple):
        raise ConfigError(f"Invalid signal list '{value}'")

    names = []
    for name in value:
        name = str(name).upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        if not isinstance(getattr(signal, name, None), signal.Signals):
            raise ConfigError(f"Unknown signal '{name}'")
        if name in UNTRAPPABLE_SIGNALS:
            raise ConfigError(f"Signal '{name}' cannot be trapped")
        names.append(name)
    return names


@dataclass
class RegistryConfig:
    """
    Configuration for a HandlerRegistry.

    Attributes:
        on_error: What run_all() does when a callback raises. "isolate" logs
            the failure and continues with the remaining handlers, "abort"
            propagates the exception and leaves later handlers registered.
        signals: Signal names that trigger an orderly interpreter exit, so
            that handlers still run when the process is terminated by them.
    """

    on_error: str = ON_ERROR_ISOLATE
    signals: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.on_error = _validate_on_error(self.on_error)
        self.signals = _validate_signals(self.signals)

    @property
    def signal_numbers(self) -> list[signal.Signals]:
        """Configured signals as signal.Signals members."""
        return [signal.Signals[name] for name in self.signals]

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RegistryConfig":
        """
        Build config from a mapping, ignoring unknown keys.

        Raises:
            ConfigError: If a value is invalid
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping, got {type(data).__name__}")

        known = {"on_error", "signals"}
        unknown = sorted(set(data) - known)
        if unknown:
            logging.getLogger(__name__).warning(
                "ignoring unknown config keys", extra={"keys": unknown}
            )
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RegistryConfig":
        """
        Load config from a YAML file.

        The settings may sit at the top level or under a "shutdown_handler"
        section, so the file can be shared with other application config.

        Raises:
            ConfigError: If the file is missing, too large or malformed
        """
        path = Path(path)
        try:
            file_size = os.path.getsize(path)
        except OSError as e:
            raise ConfigError(f"Cannot read config file '{path}'") from e
        if file_size > MAX_CONFIG_SIZE_BYTES:
            raise ConfigError(
                f"Configuration file '{path}' is {file_size} bytes, "
                f"exceeding maximum size of {MAX_CONFIG_SIZE_BYTES} bytes"
            )

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file '{path}'") from e
        except UnicodeDecodeError as e:
            raise ConfigError(f"Config file '{path}' is not UTF-8") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in '{path}'", error=str(e)) from e

        if isinstance(data, dict) and CONFIG_SECTION in data:
            data = data[CONFIG_SECTION]
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "RegistryConfig":
        """
        Build config from environment variables.

        SHUTDOWN_HANDLER_ON_ERROR and SHUTDOWN_HANDLER_SIGNALS (comma
        separated) are recognized; unset variables keep their defaults.
        """
        data: dict[str, Any] = {}
        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix) :].lower()
            if name in ("on_error", "signals"):
                data[name] = value
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return {"on_error": self.on_error, "signals": list(self.signals)}
