"""Load application settings from config/settings.yaml with environment overrides."""

import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULTS: dict[str, Any] = {
    "http": {
        "host": "0.0.0.0",
        "port": 3000,
        "title": "MeuPaoZin API",
        "version": "2.0.0",
    },
    "database": {
        "path": "data/meupaozin.db",
        "busy_timeout": 5000,
    },
    "kafka": {
        "bootstrap_servers": ["localhost:9092"],
        "client_id": "meupaozin-api",
        "group_id": "meupaozin-consumer-group",
        "auto_offset_reset": "latest",
        "request_timeout_ms": 30000,
    },
    "messaging": {
        "publish_timeout": 5.0,
        "producer": {
            "reconnect_interval": 30.0,
        },
        "retry": {
            "max_attempts": 8,
            "initial_backoff": 0.1,
            "max_backoff": 5.0,
            "multiplier": 2.0,
        },
        "consumer": {
            "poll_timeout_ms": 1000,
            "max_records": 50,
            "reconnect_interval": 5.0,
        },
        "fallback": {
            "db_path": "data/undelivered_events.db",
            "replay_batch_size": 50,
            "busy_timeout": 5000,
        },
    },
    "logging": {
        "file": "data/logs/app.log",
        "level": "INFO",
        "log_to_console": True,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
    },
}

# env var -> (dot path, converter)
_ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "KAFKA_BROKERS": ("kafka.bootstrap_servers", lambda v: [b.strip() for b in v.split(",") if b.strip()]),
    "KAFKA_CLIENT_ID": ("kafka.client_id", str),
    "KAFKA_CONSUMER_GROUP_ID": ("kafka.group_id", str),
    "KAFKA_GROUP_ID": ("kafka.group_id", str),
    "DB_PATH": ("database.path", str),
    "HOST": ("http.host", str),
    "PORT": ("http.port", int),
    "LOG_LEVEL": ("logging.level", str),
}

_cached: dict[str, Any] | None = None


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base recursively. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _set_path(settings: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = settings
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _apply_env_overrides(settings: dict[str, Any], environ: dict[str, str]) -> None:
    """Environment wins over YAML. Empty or unparsable values are ignored."""
    for name, (path, convert) in _ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or not raw.strip():
            continue
        try:
            value = convert(raw.strip())
        except ValueError:
            continue
        if value in ([], ""):
            continue
        _set_path(settings, path, value)


def get_default_settings() -> dict[str, Any]:
    """Return a deep copy of default settings."""
    return _deep_copy_nested(_DEFAULTS)


def get_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'kafka.client_id')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def reload_settings() -> None:
    """Clear the settings cache. Call after config files or env change."""
    global _cached
    _cached = None


def load_settings(
    config_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Load settings: defaults, then config/settings.yaml, then environment overrides."""
    global _cached
    if _cached is not None:
        return _cached

    if config_dir is None:
        config_dir = Path(__file__).resolve().parent.parent / "config"
    path = config_dir / "settings.yaml"

    result: dict[str, Any] = {}
    for k, v in _DEFAULTS.items():
        result[k] = _deep_copy_nested(v)

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                _deep_merge(result, data)
        except (yaml.YAMLError, OSError):
            pass

    _apply_env_overrides(result, dict(os.environ) if environ is None else environ)

    _cached = result
    return result


def _deep_copy_nested(obj: Any) -> Any:
    """Return a deep copy of nested dicts/lists for defaults."""
    if isinstance(obj, dict):
        return {k: _deep_copy_nested(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy_nested(x) for x in obj]
    return obj
