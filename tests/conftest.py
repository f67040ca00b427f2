"""Shared test fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path for package and test helper imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"

CPUINFO = "/proc/cpuinfo"
SMT_CONTROL = "/sys/devices/system/cpu/smt/control"


class MockContext:
    """Mock Context for testing without real /proc or /sys access."""

    def __init__(
        self,
        file_contents: dict[str, str] | None = None,
        read_sequences: dict[str, list[str]] | None = None,
        write_errors: dict[str, Exception] | None = None,
        machine: str = "x86_64",
    ):
        self.file_contents = dict(file_contents or {})
        self.read_sequences = {k: list(v) for k, v in (read_sequences or {}).items()}
        self.write_errors = write_errors or {}
        self._machine = machine
        self.files_read: list[str] = []
        self.files_written: list[tuple[str, str]] = []

    def read_file(self, path: str) -> str:
        """Return mocked file content.

        Paths in read_sequences return their entries in order; the last
        entry repeats once the sequence is exhausted.
        """
        self.files_read.append(path)
        sequence = self.read_sequences.get(path)
        if sequence:
            return sequence.pop(0) if len(sequence) > 1 else sequence[0]
        if path not in self.file_contents:
            raise FileNotFoundError(f"No mock content for: {path}")
        return self.file_contents[path]

    def write_file(self, path: str, content: str) -> None:
        """Record the write, or raise the configured error."""
        if path in self.write_errors:
            raise self.write_errors[path]
        self.files_written.append((path, content))
        self.file_contents[path] = content

    def file_exists(self, path: str) -> bool:
        """Check if path is in mocked files."""
        return path in self.file_contents or path in self.read_sequences

    def machine(self) -> str:
        """Return mocked machine architecture."""
        return self._machine


@pytest.fixture
def mock_context():
    """Factory fixture for creating MockContext instances."""
    def _create(**kwargs) -> MockContext:
        return MockContext(**kwargs)
    return _create


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep logs and user config out of the real home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return FIXTURES_DIR


def load_fixture(category: str, name: str) -> str:
    """Load a fixture file by category and name."""
    fixture_path = FIXTURES_DIR / category / name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text()
