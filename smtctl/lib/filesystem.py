"""Filesystem utilities built on the execution context."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smtctl.core.context import Context


class FileError(Exception):
    """Error accessing a file."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


def _context(context: "Context | None") -> "Context":
    if context is None:
        from smtctl.core.context import Context
        context = Context()
    return context


def read_file(
    path: str,
    context: "Context | None" = None,
    default: str | None = None,
) -> str:
    """
    Read file contents.

    Args:
        path: Path to file
        context: Execution context (for testing)
        default: Default value if file doesn't exist

    Returns:
        File contents

    Raises:
        FileError: If file doesn't exist and no default provided, or
            it exists but cannot be read or is not valid text
    """
    context = _context(context)

    try:
        return context.read_file(path)
    except FileNotFoundError:
        if default is not None:
            return default
        raise FileError(f"File not found: {path}", path)
    except UnicodeDecodeError as e:
        raise FileError(f"failed to decode {path}: {e}", path) from e
    except OSError as e:
        raise FileError(f"failed to read {path}: {e}", path) from e


def write_file(
    path: str,
    content: str,
    context: "Context | None" = None,
) -> None:
    """
    Create or truncate a file and write content to it.

    The write is attempted exactly once.

    Args:
        path: Path to file
        content: Text to write
        context: Execution context (for testing)

    Raises:
        FileError: If the file cannot be opened or written
    """
    context = _context(context)

    try:
        context.write_file(path, content)
    except OSError as e:
        raise FileError(f'failed to write "{content}" to {path}: {e}', path) from e


def file_exists(
    path: str,
    context: "Context | None" = None,
) -> bool:
    """
    Check if file exists.

    Args:
        path: Path to check
        context: Execution context (for testing)

    Returns:
        True if file exists
    """
    return _context(context).file_exists(path)
