from __future__ import annotations

"""Best-effort key-value persistence for tracker state."""

import copy
import json
import re
import sys
import time
from pathlib import Path
from typing import Any, Callable, Protocol


KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

ErrorHook = Callable[[str, str, Exception], None]


class Store(Protocol):
    def read(self, key: str, default: Any) -> Any: ...
    def write(self, key: str, value: Any) -> None: ...


def _resolve_default(default: Any) -> Any:
    if callable(default):
        return default()
    return copy.deepcopy(default)


def _check_key(key: str) -> str:
    if not isinstance(key, str) or not KEY_PATTERN.match(key):
        raise ValueError(f"Invalid store key: {key!r}")
    return key


def _report(hook: ErrorHook | None, action: str, key: str, exc: Exception) -> None:
    if hook is not None:
        hook(action, key, exc)
        return
    print(f"[store] failed to {action} {key}: {exc}", file=sys.stderr)


def _save_json(path: Path, value: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".{path.name}.tmp"
    payload = json.dumps(value, indent=2, ensure_ascii=False)
    for attempt in range(5):
        temp_path.write_text(payload, encoding="utf-8")
        try:
            temp_path.replace(path)
            return
        except PermissionError:
            if attempt == 4:
                raise
            # Windows indexers can hold a fresh temp file for a moment.
            time.sleep(0.02 * (attempt + 1))


class JsonFileStore:
    """One JSON document per key under `root`; read and write failures are swallowed."""

    def __init__(self, root: Path, on_error: ErrorHook | None = None) -> None:
        self.root = root
        self.on_error = on_error

    def path_for(self, key: str) -> Path:
        return self.root / f"{_check_key(key)}.json"

    def read(self, key: str, default: Any) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return _resolve_default(default)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _report(self.on_error, "read", key, exc)
            return _resolve_default(default)

    def write(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        try:
            _save_json(path, value)
        except (OSError, TypeError, ValueError) as exc:
            _report(self.on_error, "write", key, exc)


class MemoryStore:
    """Dict-backed store holding serialized text, so values never alias the caller's."""

    def __init__(self, initial: dict[str, Any] | None = None, on_error: ErrorHook | None = None) -> None:
        self.on_error = on_error
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[_check_key(key)] = json.dumps(value)

    def read(self, key: str, default: Any) -> Any:
        raw = self._data.get(_check_key(key))
        if raw is None:
            return _resolve_default(default)
        try:
            return json.loads(raw)
        except ValueError as exc:
            _report(self.on_error, "read", key, exc)
            return _resolve_default(default)

    def write(self, key: str, value: Any) -> None:
        _check_key(key)
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            _report(self.on_error, "write", key, exc)

    def put_raw(self, key: str, text: str) -> None:
        self._data[_check_key(key)] = text
