"""CPU topology parsing and modelling."""

from smtctl.topology.cpuset import VULNERABLE_BUGS, CpuSet, format_cpu_list, load_cpuset
from smtctl.topology.parser import REQUIRED_KEYS, LogicalProcessor, ParseError, parse_cpuinfo

__all__ = [
    "REQUIRED_KEYS",
    "VULNERABLE_BUGS",
    "CpuSet",
    "LogicalProcessor",
    "ParseError",
    "format_cpu_list",
    "load_cpuset",
    "parse_cpuinfo",
]
