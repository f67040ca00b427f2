"""Core smtctl functionality."""

from smtctl.core.config import ConfigError, Settings, load_settings
from smtctl.core.context import Context
from smtctl.core.logging import ScriptLogger, get_log_path
from smtctl.core.output import Output

__all__ = [
    "ConfigError",
    "Context",
    "Output",
    "ScriptLogger",
    "Settings",
    "get_log_path",
    "load_settings",
]
