from __future__ import annotations

"""Settings file loading and validation."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator


SETTINGS_FILE_NAME = "settings.yaml"

DEFAULT_METRICS = [
    "Did I think about what I'm playing for?",
    "Did I track enemy jungle & ping?",
    "Did I gank randomly instead of farming?",
    "Did I check enemy wards before ganking?",
]
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "default_metrics": {
            "type": "array",
            "items": {"type": "string", "minLength": 1, "pattern": r"\S"},
        },
        "telemetry": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"enabled": {"type": "boolean"}},
        },
        "server": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "host": {"type": "string", "minLength": 1},
                "port": {"type": "integer", "minimum": 1, "maximum": 65535},
            },
        },
    },
}


@dataclass(frozen=True)
class Settings:
    default_metrics: list[str] = field(default_factory=lambda: list(DEFAULT_METRICS))
    telemetry_enabled: bool = True
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def settings_path(home: Path) -> Path:
    return home / SETTINGS_FILE_NAME


def load_settings(home: Path) -> Settings:
    """Read `settings.yaml` from the tracker home; a missing file means defaults.

    Raises `ValueError` for unparsable or schema-invalid files.
    """

    path = settings_path(home)
    if not path.exists():
        return Settings()
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Settings file is not valid YAML: {path}") from exc
    if payload is None:
        return Settings()
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file must be a mapping: {path}")

    validator = Draft202012Validator(SETTINGS_SCHEMA)
    errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.path) or "<root>"
        raise ValueError(f"Settings validation failed for {path} at {where}: {first.message}")

    telemetry = payload.get("telemetry", {})
    server = payload.get("server", {})
    metrics = payload.get("default_metrics")
    return Settings(
        default_metrics=[item.strip() for item in metrics] if metrics is not None else list(DEFAULT_METRICS),
        telemetry_enabled=bool(telemetry.get("enabled", True)),
        host=str(server.get("host", DEFAULT_HOST)),
        port=int(server.get("port", DEFAULT_PORT)),
    )
