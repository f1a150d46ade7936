from __future__ import annotations

"""Tracker state controller: metrics, grade matrix, snapshot history, selected day."""

import copy
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable

from . import __version__
from .config import Settings, load_settings
from .paths import ensure_home_dirs, tracker_home
from .progress import ProgressMatrix, average, build_empty, drop_column, is_matrix, reconcile, set_cell
from .store import JsonFileStore, Store
from .telemetry import EventLog


METRICS_KEY = "metrics"
PROGRESS_KEY = "progress"
HISTORY_KEY = "history"
EXPORT_SCHEMA_VERSION = "0.1"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _iso_millis(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_metric_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _store_error_hook(events: EventLog | None) -> Callable[[str, str, Exception], None]:
    def _hook(action: str, key: str, exc: Exception) -> None:
        if events is None:
            return
        events.log_event(
            f"store.{action}_failed",
            source="system",
            data={"key": key, "error_type": exc.__class__.__name__},
        )

    return _hook


@dataclass
class TrackerService:
    """Owns tracker state and writes every change through the injected store."""

    store: Store
    settings: Settings = field(default_factory=Settings)
    events: EventLog | None = None
    home: Path | None = None
    clock: Callable[[], datetime] = _utc_now
    metrics: list[str] = field(default_factory=list)
    progress: ProgressMatrix = field(default_factory=list)
    history: list[dict[str, Any]] = field(default_factory=list)
    selected_day: int = 0

    @classmethod
    def create(cls, home: Path | None = None) -> "TrackerService":
        """Build a file-backed service under the tracker home and load stored state."""

        base = home or tracker_home()
        dirs = ensure_home_dirs(base)
        settings = load_settings(base)
        events = EventLog(dirs["telemetry"] / "events.jsonl", enabled=settings.telemetry_enabled)
        store = JsonFileStore(dirs["state"], on_error=_store_error_hook(events))
        service = cls.from_store(store, settings=settings, events=events, home=base)
        service._emit("tracker.started", source="cli", data={"version": __version__, "metric_count": len(service.metrics)})
        return service

    @classmethod
    def from_store(
        cls,
        store: Store,
        *,
        settings: Settings | None = None,
        events: EventLog | None = None,
        home: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "TrackerService":
        service = cls(store=store, settings=settings or Settings(), events=events, home=home)
        if clock is not None:
            service.clock = clock
        service.load()
        return service

    def load(self) -> None:
        """Read the three persisted values, falling back to defaults for anything unusable."""

        metrics = self.store.read(METRICS_KEY, lambda: list(self.settings.default_metrics))
        if not _is_metric_list(metrics):
            metrics = list(self.settings.default_metrics)
        progress = self.store.read(PROGRESS_KEY, lambda: build_empty(len(metrics)))
        if not is_matrix(progress):
            progress = build_empty(len(metrics))
        history = self.store.read(HISTORY_KEY, list)
        if not isinstance(history, list):
            history = []
        history = [item for item in history if isinstance(item, dict)]

        self.metrics = metrics
        self.history = history
        self.selected_day = 0
        reconciled = reconcile(len(metrics), progress)
        self.progress = reconciled
        if reconciled != progress:
            self._commit(PROGRESS_KEY)

    def _commit(self, *keys: str) -> None:
        values = {METRICS_KEY: self.metrics, PROGRESS_KEY: self.progress, HISTORY_KEY: self.history}
        for key in keys:
            self.store.write(key, values[key])

    def _emit(self, event_type: str, *, source: str, data: dict[str, Any]) -> None:
        if self.events is not None:
            self.events.log_event(event_type, source=source, data=data)

    def _replace_metrics(self, metrics: list[str]) -> None:
        self.metrics = metrics
        self.progress = reconcile(len(metrics), self.progress)
        self._commit(METRICS_KEY, PROGRESS_KEY)

    def select_day(self, day_idx: int) -> None:
        self.selected_day = day_idx

    def set_grade(self, game_idx: int, metric_idx: int, grade: int, *, source: str = "cli") -> None:
        """Grade one metric of one game on the selected day.

        Indices are not range-checked here; adapters only offer valid cells.
        """

        self.progress = set_cell(self.progress, self.selected_day, game_idx, metric_idx, grade)
        self._commit(PROGRESS_KEY)
        self._emit(
            "grade.set",
            source=source,
            data={"day": self.selected_day, "game": game_idx, "metric": metric_idx, "grade": grade},
        )

    def add_metric(self, text: str, *, source: str = "cli") -> bool:
        """Append a trimmed metric; blank text is ignored and returns False."""

        value = (text or "").strip()
        if not value:
            return False
        self._replace_metrics([*self.metrics, value])
        self._emit("metric.added", source=source, data={"index": len(self.metrics) - 1, "metric_count": len(self.metrics)})
        return True

    def delete_metric(self, idx: int, *, source: str = "cli") -> str | None:
        """Remove the metric at `idx`; an index outside the list changes nothing."""

        if not 0 <= idx < len(self.metrics):
            return None
        removed = self.metrics[idx]
        self.progress = drop_column(self.progress, idx)
        self._replace_metrics([metric for pos, metric in enumerate(self.metrics) if pos != idx])
        self._emit("metric.deleted", source=source, data={"index": idx, "metric_count": len(self.metrics)})
        return removed

    def average(self) -> str:
        return average(self.progress)

    def _next_snapshot_id(self, now: datetime) -> int:
        candidate = int(now.timestamp() * 1000)
        last_ids = [item.get("id") for item in self.history]
        numeric = [value for value in last_ids if isinstance(value, int)]
        if numeric and candidate <= max(numeric):
            return max(numeric) + 1
        return candidate

    def save_snapshot(self, *, source: str = "cli") -> dict[str, Any]:
        """Append an immutable copy of metrics, progress and average to history."""

        now = self.clock()
        snapshot = {
            "id": self._next_snapshot_id(now),
            "timestamp": _iso_millis(now),
            "metrics": list(self.metrics),
            "progress": copy.deepcopy(self.progress),
            "avg": average(self.progress),
        }
        self.history = [*self.history, snapshot]
        self._commit(HISTORY_KEY)
        self._emit(
            "snapshot.saved",
            source=source,
            data={"snapshot_id": snapshot["id"], "avg": snapshot["avg"], "history_size": len(self.history)},
        )
        return copy.deepcopy(snapshot)

    def reset_progress(self, *, source: str = "cli") -> None:
        self.progress = build_empty(len(self.metrics))
        self._commit(PROGRESS_KEY)
        self._emit("progress.reset", source=source, data={"metric_count": len(self.metrics)})

    def list_history(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self.history)

    def state(self) -> dict[str, Any]:
        """Detached view of everything the page renders."""

        return {
            "metrics": list(self.metrics),
            "progress": copy.deepcopy(self.progress),
            "history": copy.deepcopy(self.history),
            "selected_day": self.selected_day,
            "average": self.average(),
        }

    def export_state(self, out_path: Path, *, source: str = "cli") -> dict[str, Any]:
        """Write persisted state to `out_path` as one JSON document."""

        payload = {
            "schema_version": EXPORT_SCHEMA_VERSION,
            "exported_at": _iso_millis(self.clock()),
            "tracker_version": __version__,
            METRICS_KEY: list(self.metrics),
            PROGRESS_KEY: copy.deepcopy(self.progress),
            HISTORY_KEY: copy.deepcopy(self.history),
        }
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        self._emit("state.exported", source=source, data={"history_size": len(self.history)})
        return {"path": str(out_path), "metric_count": len(self.metrics), "history_size": len(self.history)}
