from __future__ import annotations

"""Append-only JSONL event log for tracker mutations."""

import hashlib
import json
import sys
import unicodedata
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


SCHEMA_VERSION = "0.1"
VALID_EVENT_TYPES = {
    "tracker.started",
    "metric.added",
    "metric.deleted",
    "grade.set",
    "snapshot.saved",
    "progress.reset",
    "state.exported",
    "store.read_failed",
    "store.write_failed",
    "api.error",
    "event.invalid",
}
VALID_SOURCES = {"cli", "api", "ui", "system"}
MAX_STRING_LENGTH = 200


def _utc_now_rfc3339() -> str:
    return datetime.now(tz=UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _safe_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def _strip_control_chars(value: str) -> str:
    return "".join(ch for ch in value if not unicodedata.category(ch).startswith("C"))


@dataclass(frozen=True)
class SanitizeStats:
    """How many strings were shortened while sanitizing one payload."""

    truncated_fields: int = 0


def _sanitize_text(value: str) -> tuple[str, SanitizeStats]:
    cleaned = _strip_control_chars(value).strip()
    if len(cleaned) > MAX_STRING_LENGTH:
        return f"{cleaned[:MAX_STRING_LENGTH]}...[truncated]", SanitizeStats(truncated_fields=1)
    return cleaned, SanitizeStats()


def sanitize_event_data(data: Any) -> tuple[Any, SanitizeStats]:
    """Recursively strip control characters and cap string lengths."""

    if isinstance(data, dict):
        sanitized: dict[str, Any] = {}
        truncated = 0
        for key, value in data.items():
            key_text, key_stats = _sanitize_text(str(key))
            value_sanitized, value_stats = sanitize_event_data(value)
            sanitized[key_text] = value_sanitized
            truncated += key_stats.truncated_fields + value_stats.truncated_fields
        return sanitized, SanitizeStats(truncated_fields=truncated)
    if isinstance(data, (list, tuple)):
        items: list[Any] = []
        truncated = 0
        for item in data:
            item_sanitized, item_stats = sanitize_event_data(item)
            items.append(item_sanitized)
            truncated += item_stats.truncated_fields
        return items, SanitizeStats(truncated_fields=truncated)
    if data is None or isinstance(data, (int, float, bool)):
        return data, SanitizeStats()
    return _sanitize_text(str(data))


def hashlib_sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class EventLog:
    """Best-effort event log; a failed append is reported on stderr and never raised."""

    def __init__(self, events_path: Path, *, enabled: bool = True) -> None:
        self.events_path = events_path
        self.enabled = enabled
        if enabled:
            self.events_path.parent.mkdir(parents=True, exist_ok=True)

    def _normalize_source(self, source: str) -> str:
        if source in VALID_SOURCES:
            return source
        return "cli"

    def _append_jsonl(self, payload: dict[str, Any]) -> None:
        self.events_path.parent.mkdir(parents=True, exist_ok=True)
        with self.events_path.open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(_safe_json(payload))
            handle.write("\n")

    def _base_event(self, *, event_type: str, source: str, data: dict[str, Any]) -> dict[str, Any]:
        if event_type not in VALID_EVENT_TYPES:
            data = {"reason": "invalid_event_type", "invalid_event_type_hash": hashlib_sha256_hex(event_type)}
            event_type = "event.invalid"
        return {
            "schema_version": SCHEMA_VERSION,
            "event_id": str(uuid.uuid4()),
            "ts": _utc_now_rfc3339(),
            "event_type": event_type,
            "source": self._normalize_source(source),
            "data": data,
        }

    def log_event(self, event_type: str, *, source: str = "cli", data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        try:
            sanitized, stats = sanitize_event_data(data or {})
            if stats.truncated_fields:
                sanitized["fields_truncated_count"] = stats.truncated_fields
            self._append_jsonl(self._base_event(event_type=event_type, source=source, data=sanitized))
        except Exception as exc:  # noqa: BLE001
            print(f"[telemetry] failed to append event: {exc}", file=sys.stderr)

    def iter_events(self) -> list[dict[str, Any]]:
        if not self.events_path.exists():
            return []
        events: list[dict[str, Any]] = []
        with self.events_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, dict):
                    events.append(payload)
        return events

    def count_events(self) -> int:
        if not self.events_path.exists():
            return 0
        count = 0
        with self.events_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if line.strip():
                    count += 1
        return count
