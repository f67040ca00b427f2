"""Tests for smtctl.core.context and the MockContext test double."""

import platform

import pytest

from smtctl.core.context import Context


class TestContext:
    """Tests for the real Context against tmp files."""

    def test_read_file(self, tmp_path):
        path = tmp_path / "cpuinfo"
        path.write_text("processor\t: 0\n")

        assert Context().read_file(str(path)) == "processor\t: 0\n"

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Context().read_file(str(tmp_path / "missing"))

    def test_write_file_truncates(self, tmp_path):
        path = tmp_path / "control"
        path.write_text("notsupported")

        Context().write_file(str(path), "off")

        assert path.read_text() == "off"

    def test_write_file_creates(self, tmp_path):
        path = tmp_path / "control"

        Context().write_file(str(path), "on")

        assert path.read_text() == "on"

    def test_write_file_missing_directory(self, tmp_path):
        with pytest.raises(OSError):
            Context().write_file(str(tmp_path / "no" / "control"), "off")

    def test_file_exists(self, tmp_path):
        path = tmp_path / "control"
        path.write_text("on")

        assert Context().file_exists(str(path)) is True
        assert Context().file_exists(str(tmp_path / "missing")) is False

    def test_machine(self):
        assert Context().machine() == platform.machine()


class TestMockContext:
    """Tests for the MockContext test double."""

    def test_read_sequence_repeats_last(self, mock_context):
        ctx = mock_context(read_sequences={"/f": ["a", "b"]})

        assert [ctx.read_file("/f") for _ in range(3)] == ["a", "b", "b"]
        assert ctx.files_read == ["/f", "/f", "/f"]

    def test_missing_content_raises(self, mock_context):
        with pytest.raises(FileNotFoundError):
            mock_context().read_file("/f")

    def test_write_records_and_updates(self, mock_context):
        ctx = mock_context()

        ctx.write_file("/f", "off")

        assert ctx.files_written == [("/f", "off")]
        assert ctx.read_file("/f") == "off"

    def test_write_error(self, mock_context):
        ctx = mock_context(write_errors={"/f": PermissionError("denied")})

        with pytest.raises(PermissionError):
            ctx.write_file("/f", "off")
        assert ctx.files_written == []
