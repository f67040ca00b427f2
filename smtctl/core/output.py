"""Structured output helper for commands."""

import json
from typing import Any

# Status values rendered as healthy in plain output
OK_STATUSES = {"ok", "not-vulnerable", "mitigated", "restored", "dry-run"}

# Status values rendered as a warning in plain output
WARNING_STATUSES = {"vulnerable"}


class Output:
    """Collects command results and renders them once."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.warnings: list[str] = []
        self._summary: str | None = None
        self._printed: bool = False

    def emit(self, data: dict[str, Any]) -> None:
        """Store structured output data."""
        self.data.update(data)

    def warning(self, message: str) -> None:
        """Record a warning message."""
        self.warnings.append(message)

    def set_summary(self, summary: str) -> None:
        """Set a one-line summary."""
        self._summary = summary

    @property
    def summary(self) -> str:
        """Get summary or derive one from warnings."""
        if self._summary:
            return self._summary
        if self.warnings:
            return f"Warning: {self.warnings[0]}"
        return "ok"

    def to_json(self) -> str:
        """Return data and warnings as a JSON string."""
        payload = dict(self.data)
        if self.warnings:
            payload["warnings"] = self.warnings
        payload["summary"] = self.summary
        return json.dumps(payload, indent=2, default=str)

    def to_plain(self, title: str | None = None) -> str:
        """Return data as formatted plain text."""
        lines = []

        if title:
            lines.append(title)
            lines.append("=" * len(title))
            lines.append("")

        status = self.data.get("status")
        if status:
            if status in OK_STATUSES:
                tag = "OK"
            elif status in WARNING_STATUSES:
                tag = "WARNING"
            else:
                tag = "CRITICAL"
            lines.append(f"[{tag}] Status: {status.upper()}")
            lines.append("")

        for key, value in self.data.items():
            if key == "status":
                continue
            self._render_value(lines, key, value, indent=0)

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  [WARNING] {warning}")

        lines.append("")
        lines.append(self.summary)
        return "\n".join(lines)

    def render(self, format: str = "plain", title: str | None = None) -> None:
        """Print output in the specified format.

        Args:
            format: Output format - "json" or "plain"
            title: Optional title for plain text output
        """
        if self._printed:
            return
        self._printed = True

        if format == "json":
            print(self.to_json())
        else:
            print(self.to_plain(title))

    def _render_value(self, lines: list, key: str | int, value: Any, indent: int = 0) -> None:
        """Recursively render a value with proper formatting."""
        prefix = "  " * indent

        if isinstance(key, int):
            display_key = str(key)
        else:
            display_key = str(key).replace("_", " ").title()

        if isinstance(value, dict):
            lines.append(f"{prefix}{display_key}:")
            for k, v in value.items():
                self._render_value(lines, k, v, indent + 1)
        elif isinstance(value, (list, tuple)):
            if not value:
                lines.append(f"{prefix}{display_key}: (none)")
            else:
                lines.append(f"{prefix}{display_key}: {', '.join(str(x) for x in value)}")
        elif isinstance(value, bool):
            lines.append(f"{prefix}{display_key}: {'yes' if value else 'no'}")
        elif value is None:
            lines.append(f"{prefix}{display_key}: -")
        else:
            lines.append(f"{prefix}{display_key}: {value}")
