"""
Structured hook execution log.

Every hook run writes JSON Lines records (one object per line) to
``.hookflow/logs/hooks.log`` with size-based rotation, and mirrors a
readable line to the console through rich.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_FILE = Path(".hookflow") / "logs" / "hooks.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_logger = logging.getLogger(__name__)


class JsonLineFormatter(logging.Formatter):
    """Render the structured entry attached to a record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = getattr(record, "hook_entry", None)
        if entry is None:
            entry = {"timestamp": _now(), "level": record.levelname.lower(), "message": record.getMessage()}
        return json.dumps(entry, default=str)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _console_message(entry: dict[str, Any]) -> str:
    parts = [f"[{entry['hookName']}]", entry["artifactId"]]
    if "status" in entry:
        parts.append(entry["status"])
    if "duration" in entry:
        parts.append(f"({entry['duration']}ms)")
    if "error" in entry:
        parts.append(f"- {entry['error']}")
    metadata = entry.get("metadata") or {}
    if "message" in metadata:
        parts.append(f"- {metadata['message']}")
    return " ".join(str(p) for p in parts)


class HookLogger:
    """
    Structured logger for hook executions.

    Args:
        log_file: JSON Lines log path
        level: Minimum level ("debug", "info", "warn", "error")
        console_output: Mirror entries to stderr via rich
        file_output: Write entries to ``log_file``
        max_bytes: Rotate when the file reaches this size
        backup_count: Number of rotated files to keep (hooks.log.1 .. .N)
        console: Console used for console output (defaults to stderr)
    """

    def __init__(
        self,
        log_file: Path = DEFAULT_LOG_FILE,
        level: str = "info",
        console_output: bool = True,
        file_output: bool = True,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        console: Console | None = None,
    ):
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level!r} (expected one of {', '.join(LOG_LEVELS)})")
        self.log_file = Path(log_file)
        self.level = level

        # Unmanaged logger so instances never share handlers
        self._log = logging.Logger(f"hookflow.hooks.{self.log_file}", LOG_LEVELS[level])
        self._log.propagate = False

        if file_output:
            try:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                handler = RotatingFileHandler(
                    self.log_file,
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding="utf-8",
                )
            except OSError as e:
                _logger.error("Failed to open hook log %s: %s", self.log_file, e)
            else:
                handler.setFormatter(JsonLineFormatter())
                self._log.addHandler(handler)

        if console_output:
            console_handler = RichHandler(
                console=console or Console(stderr=True),
                show_path=False,
                markup=False,
            )
            console_handler.setFormatter(logging.Formatter("%(message)s"))
            self._log.addHandler(console_handler)

    def close(self) -> None:
        for handler in list(self._log.handlers):
            handler.close()
            self._log.removeHandler(handler)

    def _emit(self, level: str, entry: dict[str, Any]) -> None:
        levelno = LOG_LEVELS[level]
        if not self._log.isEnabledFor(levelno):
            return
        record = {"timestamp": _now(), "level": level, **entry}
        self._log.log(levelno, _console_message(record), extra={"hook_entry": record})

    def log_start(self, hook_name: str, artifact_id: str) -> None:
        self._emit("info", {"hookName": hook_name, "artifactId": artifact_id, "status": "started"})

    def log_success(
        self,
        hook_name: str,
        artifact_id: str,
        duration: int,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        entry: dict[str, Any] = {
            "hookName": hook_name,
            "artifactId": artifact_id,
            "duration": duration,
            "status": "success",
        }
        if metadata:
            entry["metadata"] = metadata
        self._emit("info", entry)

    def log_error(
        self,
        hook_name: str,
        artifact_id: str,
        error: BaseException | str,
        duration: int | None = None,
    ) -> None:
        entry: dict[str, Any] = {"hookName": hook_name, "artifactId": artifact_id, "status": "failed"}
        if duration is not None:
            entry["duration"] = duration
        entry["error"] = str(error)
        self._emit("error", entry)

    def debug(self, hook_name: str, artifact_id: str, metadata: dict[str, Any] | None = None) -> None:
        entry: dict[str, Any] = {"hookName": hook_name, "artifactId": artifact_id}
        if metadata:
            entry["metadata"] = metadata
        self._emit("debug", entry)

    def warn(
        self,
        hook_name: str,
        artifact_id: str,
        message: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._emit(
            "warn",
            {"hookName": hook_name, "artifactId": artifact_id, "metadata": {**(metadata or {}), "message": message}},
        )


def read_hook_log(log_file: Path, last_n: int | None = None) -> list[dict[str, Any]]:
    """
    Read entries from a hook log.

    Args:
        log_file: Path to the JSON Lines log
        last_n: If specified, return only the last N entries

    Returns:
        List of entries, oldest first. Lines that are not valid JSON are skipped.
    """
    log_file = Path(log_file)
    if not log_file.exists():
        return []

    entries = []
    with log_file.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    if last_n is not None:
        entries = entries[-last_n:]
    return entries
