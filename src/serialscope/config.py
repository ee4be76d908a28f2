"""Load host decoder settings from TOML files."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

import tomllib


DEFAULT_PORT = "/dev/serial/by-id/usb-FTDI_FT232R_USB_UART_00000000-if00-port0"
DEFAULT_BAUD = 230_400
DEFAULT_TIMEOUT = 1.0
DEFAULT_READ_SIZE = 1024
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_QUEUE_LIMIT = 0
DEFAULT_POLL_INTERVAL = 1.0 / 60.0
DEFAULT_SUMMARY_INTERVAL = 1.0
DEFAULT_DEMO_RATE = 60.0
DEFAULT_LOG_LEVEL = "WARNING"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class SettingsError(ValueError):
    """Raised when a settings file fails validation."""


@dataclass(frozen=True)
class SerialSettings:
    """Serial port parameters for the device link."""

    port: str = DEFAULT_PORT
    baud: int = DEFAULT_BAUD
    timeout: float = DEFAULT_TIMEOUT
    read_size: int = DEFAULT_READ_SIZE
    retry_delay: float = DEFAULT_RETRY_DELAY


@dataclass(frozen=True)
class DecoderSettings:
    """Consumer-side pacing and queue limits."""

    queue_limit: int = DEFAULT_QUEUE_LIMIT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    summary_interval: float = DEFAULT_SUMMARY_INTERVAL
    demo_rate: float = DEFAULT_DEMO_RATE


@dataclass(frozen=True)
class Settings:
    """Resolved settings used by the command-line runtime."""

    serial: SerialSettings = field(default_factory=SerialSettings)
    decoder: DecoderSettings = field(default_factory=DecoderSettings)
    log_level: str = DEFAULT_LOG_LEVEL
    replay_path: Path | None = None

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with non-``None`` flat overrides applied.

        Keys name fields of :class:`SerialSettings`, :class:`DecoderSettings`
        or the top-level settings. Values pass through the same validation as
        the settings file and raise :class:`SettingsError` when rejected.
        """

        serial_fields: Dict[str, Any] = {}
        decoder_fields: Dict[str, Any] = {}
        top_fields: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            coerce = _OVERRIDE_COERCERS.get(key)
            if coerce is None:
                raise SettingsError(f"unknown setting override '{key}'")
            value = coerce(value)
            if key in SerialSettings.__dataclass_fields__:
                serial_fields[key] = value
            elif key in DecoderSettings.__dataclass_fields__:
                decoder_fields[key] = value
            else:
                top_fields[key] = value
        return replace(
            self,
            serial=replace(self.serial, **serial_fields),
            decoder=replace(self.decoder, **decoder_fields),
            **top_fields,
        )


def load_settings(config_path: Path) -> Settings:
    """Parse and validate the settings file at ``config_path``."""

    try:
        with config_path.open("rb") as stream:
            data = tomllib.load(stream)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"{config_path}: {exc}") from exc

    return Settings(
        serial=_parse_serial_section(data.get("serial")),
        decoder=_parse_decoder_section(data.get("decoder")),
        log_level=_coerce_log_level(data.get("log_level", DEFAULT_LOG_LEVEL)),
        replay_path=_parse_replay_section(data.get("replay"), base=config_path.parent),
    )


def _require_table(raw: Any, name: str) -> Mapping[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise SettingsError(f"[{name}] section must be a mapping")
    return raw


def _parse_serial_section(raw: Any) -> SerialSettings:
    section = _require_table(raw, "serial")
    defaults = SerialSettings()
    return SerialSettings(
        port=_coerce_port(section.get("port", defaults.port)),
        baud=_coerce_positive_int(section.get("baud", defaults.baud), "serial.baud"),
        timeout=_coerce_positive_float(
            section.get("timeout", defaults.timeout), "serial.timeout"
        ),
        read_size=_coerce_positive_int(
            section.get("read_size", defaults.read_size), "serial.read_size"
        ),
        retry_delay=_coerce_positive_float(
            section.get("retry_delay", defaults.retry_delay), "serial.retry_delay"
        ),
    )


def _parse_decoder_section(raw: Any) -> DecoderSettings:
    section = _require_table(raw, "decoder")
    defaults = DecoderSettings()
    return DecoderSettings(
        queue_limit=_coerce_queue_limit(section.get("queue_limit", defaults.queue_limit)),
        poll_interval=_coerce_positive_float(
            section.get("poll_interval", defaults.poll_interval), "decoder.poll_interval"
        ),
        summary_interval=_coerce_positive_float(
            section.get("summary_interval", defaults.summary_interval),
            "decoder.summary_interval",
        ),
        demo_rate=_coerce_positive_float(
            section.get("demo_rate", defaults.demo_rate), "decoder.demo_rate"
        ),
    )


def _parse_replay_section(raw: Any, *, base: Path) -> Path | None:
    section = _require_table(raw, "replay")
    raw_path = section.get("path")
    if raw_path is None:
        return None
    path = _coerce_path(raw_path)
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _coerce_int(raw: Any, name: str) -> int:
    if isinstance(raw, bool):
        raise SettingsError(f"{name} must be an integer")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        try:
            return int(raw.strip(), 10)
        except ValueError as exc:
            raise SettingsError(f"{name} must be an integer, got {raw!r}") from exc
    raise SettingsError(f"{name} must be an integer")


def _coerce_positive_int(raw: Any, name: str) -> int:
    value = _coerce_int(raw, name)
    if value <= 0:
        raise SettingsError(f"{name} must be positive")
    return value


def _coerce_positive_float(raw: Any, name: str) -> float:
    if isinstance(raw, bool):
        raise SettingsError(f"{name} must be a number")
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError as exc:
            raise SettingsError(f"{name} must be a number, got {raw!r}") from exc
    else:
        raise SettingsError(f"{name} must be a number")
    if not value > 0:
        raise SettingsError(f"{name} must be positive")
    if not math.isfinite(value):
        raise SettingsError(f"{name} must be finite")
    return value


def _coerce_log_level(raw: Any) -> str:
    if not isinstance(raw, str):
        raise SettingsError("log_level must be a string")
    level = raw.strip().upper()
    if level not in LOG_LEVELS:
        raise SettingsError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
    return level


def _coerce_port(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise SettingsError("serial.port must be a non-empty string")
    return raw.strip()


def _coerce_queue_limit(raw: Any) -> int:
    value = _coerce_int(raw, "decoder.queue_limit")
    if value < 0:
        raise SettingsError("decoder.queue_limit must not be negative")
    return value


def _coerce_path(raw: Any) -> Path:
    if isinstance(raw, Path):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise SettingsError("replay.path must be a non-empty string")
    return Path(raw).expanduser()


_OVERRIDE_COERCERS: Mapping[str, Callable[[Any], Any]] = {
    "port": _coerce_port,
    "baud": lambda raw: _coerce_positive_int(raw, "serial.baud"),
    "timeout": lambda raw: _coerce_positive_float(raw, "serial.timeout"),
    "read_size": lambda raw: _coerce_positive_int(raw, "serial.read_size"),
    "retry_delay": lambda raw: _coerce_positive_float(raw, "serial.retry_delay"),
    "queue_limit": _coerce_queue_limit,
    "poll_interval": lambda raw: _coerce_positive_float(raw, "decoder.poll_interval"),
    "summary_interval": lambda raw: _coerce_positive_float(raw, "decoder.summary_interval"),
    "demo_rate": lambda raw: _coerce_positive_float(raw, "decoder.demo_rate"),
    "log_level": _coerce_log_level,
    "replay_path": _coerce_path,
}


__all__ = [
    "DEFAULT_BAUD",
    "DEFAULT_DEMO_RATE",
    "DEFAULT_PORT",
    "DecoderSettings",
    "LOG_LEVELS",
    "SerialSettings",
    "Settings",
    "SettingsError",
    "load_settings",
]
