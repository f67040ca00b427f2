"""Execution context for testability."""

import platform
from pathlib import Path


class Context:
    """
    Wraps host access for testability.

    In production: touches the real /proc and /sys files
    In tests: can be replaced with MockContext
    """

    def read_file(self, path: str) -> str:
        """Read file contents."""
        return Path(path).read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        """
        Create or truncate a file and write content to it.

        Args:
            path: Path to write
            content: Text to write

        Raises:
            OSError: If the file cannot be opened or written
        """
        with open(path, "w") as f:
            f.write(content)

    def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        return Path(path).exists()

    def machine(self) -> str:
        """Get the host machine architecture (e.g. x86_64)."""
        return platform.machine()
