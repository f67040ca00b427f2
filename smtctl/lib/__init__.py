"""Shared utility library for smtctl."""

from smtctl.lib.filesystem import FileError, file_exists, read_file, write_file

__all__ = [
    "FileError",
    "file_exists",
    "read_file",
    "write_file",
]
