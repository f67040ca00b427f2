"""JSONL logging for command execution."""

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any


# Log level ordering
LOG_LEVELS = {"debug": 0, "info": 1, "warning": 2, "error": 3}


def default_log_dir() -> Path:
    """Return ~/var/log/smtctl, honouring $HOME."""
    home = Path(os.environ.get("HOME", "/tmp"))
    return home / "var" / "log" / "smtctl"


def get_log_path(name: str, base_path: Path | None = None) -> Path:
    """
    Get the log file path for a command.

    Args:
        name: Name of the command being logged (e.g. "mitigate")
        base_path: Base directory for logs (default: ~/var/log/smtctl)

    Returns:
        Path to the log file: {base}/{date}/{name}.jsonl
    """
    if base_path is None:
        base_path = default_log_dir()

    today = date.today().isoformat()
    return base_path / today / f"{name}.jsonl"


class ScriptLogger:
    """
    JSONL logger for command execution.

    Writes structured log entries to a JSONL file. Entries below
    min_level are dropped.
    """

    def __init__(self, name: str, log_path: Path | None = None, min_level: str = "info"):
        """
        Initialize logger.

        Args:
            name: Name of the command being logged
            log_path: Path to log file (default: auto-generated)
            min_level: Lowest level that is written
        """
        if min_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {min_level}")
        self.name = name
        self.log_path = log_path or get_log_path(name)
        self.min_level = min_level
        self.failure: str | None = None
        self._file = None

    def _ensure_file(self) -> None:
        """Ensure log file is open."""
        if self._file is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a")

    def _log(self, level: str, message: str, **extra: Any) -> None:
        """
        Write a log entry.

        The first I/O failure disables the logger and is kept in
        self.failure; later entries are dropped.
        """
        if self.failure is not None:
            return
        if LOG_LEVELS[level] < LOG_LEVELS[self.min_level]:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "script": self.name,
            "message": message,
            **extra,
        }
        try:
            self._ensure_file()
            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()
        except OSError as e:
            self.failure = f"cannot write log {self.log_path}: {e}"
            self.close()

    def debug(self, message: str, **extra: Any) -> None:
        """Log debug message."""
        self._log("debug", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        """Log info message."""
        self._log("info", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        """Log warning message."""
        self._log("warning", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        """Log error message."""
        self._log("error", message, **extra)

    def close(self) -> None:
        """Close the log file."""
        if self._file is not None:
            file, self._file = self._file, None
            try:
                file.close()
            except OSError as e:
                if self.failure is None:
                    self.failure = f"cannot write log {self.log_path}: {e}"

    def __enter__(self) -> "ScriptLogger":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
