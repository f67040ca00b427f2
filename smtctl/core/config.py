"""Configuration loading with layered overrides."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from smtctl.core.logging import default_log_dir
from smtctl.topology.cpuset import VULNERABLE_BUGS

DEFAULT_CPUINFO_PATH = "/proc/cpuinfo"
DEFAULT_SMT_CONTROL_PATH = "/sys/devices/system/cpu/smt/control"

PROJECT_CONFIG = Path(".smtctl.yaml")


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one invocation."""

    cpuinfo_path: str = DEFAULT_CPUINFO_PATH
    smt_control_path: str = DEFAULT_SMT_CONTROL_PATH
    vulnerable_bugs: frozenset[str] = VULNERABLE_BUGS
    expected_after: dict[str, tuple[str, ...]] = field(default_factory=dict)
    log_dir: Path = field(default_factory=default_log_dir)

    def expected_for(self, operation: str) -> tuple[str, ...]:
        """Acceptable post-action cpu list patterns for an operation."""
        return self.expected_after.get(operation, ())


class ConfigError(Exception):
    """An explicitly requested config file is missing or invalid."""

    def __init__(self, message: str, path: Path):
        super().__init__(message)
        self.path = path


def user_config_path() -> Path:
    """Path of the per-user config file."""
    return Path.home() / ".config" / "smtctl" / "config.yaml"


def load_config_file(path: Path, required: bool = False) -> dict[str, Any]:
    """
    Load a YAML config file if it exists.

    Args:
        path: Config file to read
        required: Raise instead of returning {} when the file is
            missing, unreadable, malformed or not a mapping

    Raises:
        ConfigError: If required and the file cannot be used
    """
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}", path)
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        if required:
            raise ConfigError(f"invalid config file {path}: {e}", path) from e
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        if required:
            raise ConfigError(f"config file {path} is not a mapping", path)
        return {}
    return data


def get_config_value(key: str, config_path: Path | None = None) -> Any:
    """
    Get config value with explicit -> project -> user -> None precedence.

    Raises:
        ConfigError: If config_path is given and cannot be loaded
    """
    if config_path is not None:
        data = load_config_file(config_path, required=True)
        if key in data:
            return data[key]

    for path in (PROJECT_CONFIG, user_config_path()):
        data = load_config_file(path)
        if key in data:
            return data[key]

    return None


def _as_patterns(value: Any) -> tuple[str, ...]:
    """Normalise a single pattern or a list of patterns to a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def load_settings(config_path: Path | None = None) -> Settings:
    """
    Resolve settings from the config layers.

    Args:
        config_path: Explicit config file (highest precedence)

    Returns:
        Settings with defaults filled in for unset keys

    Raises:
        ConfigError: If config_path is given and cannot be loaded
    """
    def value(key: str) -> Any:
        return get_config_value(key, config_path)

    overrides: dict[str, Any] = {}

    cpuinfo_path = value("cpuinfo_path")
    if cpuinfo_path:
        overrides["cpuinfo_path"] = str(cpuinfo_path)

    smt_control_path = value("smt_control_path")
    if smt_control_path:
        overrides["smt_control_path"] = str(smt_control_path)

    vulnerable_bugs = value("vulnerable_bugs")
    if vulnerable_bugs:
        overrides["vulnerable_bugs"] = frozenset(_as_patterns(vulnerable_bugs))

    expected_after = value("expected_after")
    if isinstance(expected_after, dict):
        overrides["expected_after"] = {
            str(op): _as_patterns(patterns) for op, patterns in expected_after.items()
        }

    log_dir = value("log_dir")
    if log_dir:
        overrides["log_dir"] = Path(log_dir).expanduser()

    return Settings(**overrides)
