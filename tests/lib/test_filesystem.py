"""Tests for smtctl.lib.filesystem module."""

import pytest

from smtctl.lib.filesystem import FileError, file_exists, read_file, write_file


class TestReadFile:
    """Tests for read_file."""

    def test_reads_content(self, mock_context):
        ctx = mock_context(file_contents={"/proc/cpuinfo": "processor : 0"})

        assert read_file("/proc/cpuinfo", ctx) == "processor : 0"

    def test_missing_file(self, mock_context):
        with pytest.raises(FileError, match="File not found: /proc/cpuinfo") as exc:
            read_file("/proc/cpuinfo", mock_context())

        assert exc.value.path == "/proc/cpuinfo"

    def test_missing_file_with_default(self, mock_context):
        assert read_file("/proc/cpuinfo", mock_context(), default="") == ""

    def test_unreadable_file(self, tmp_path):
        """A directory cannot be read as a file."""
        with pytest.raises(FileError, match="failed to read"):
            read_file(str(tmp_path))


class TestWriteFile:
    """Tests for write_file."""

    def test_writes_once(self, mock_context):
        ctx = mock_context()

        write_file("/sys/devices/system/cpu/smt/control", "off", ctx)

        assert ctx.files_written == [("/sys/devices/system/cpu/smt/control", "off")]

    def test_error_names_value_and_path(self, mock_context):
        ctx = mock_context(write_errors={"/ctl": PermissionError(13, "Permission denied")})

        with pytest.raises(FileError) as exc:
            write_file("/ctl", "off", ctx)

        assert str(exc.value).startswith('failed to write "off" to /ctl: ')
        assert isinstance(exc.value.__cause__, PermissionError)
        assert exc.value.path == "/ctl"

    def test_real_write(self, tmp_path):
        path = tmp_path / "control"

        write_file(str(path), "on")

        assert path.read_text() == "on"


class TestFileExists:
    """Tests for file_exists."""

    def test_exists(self, mock_context):
        ctx = mock_context(file_contents={"/ctl": "on"})

        assert file_exists("/ctl", ctx) is True
        assert file_exists("/missing", ctx) is False


class TestReadFileDecoding:
    """Tests for content that is not valid text."""

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "cpuinfo"
        path.write_bytes(b"processor\t: 0\n\xff\xfe")

        with pytest.raises(FileError, match="failed to decode") as exc:
            read_file(str(path))

        assert exc.value.path == str(path)
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)
