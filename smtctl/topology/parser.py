"""
Parse /proc/cpuinfo into logical processor records.

The file is a sequence of blank-line separated blocks, one per logical
processor, made of "key<whitespace>: value" lines. Only a fixed, ordered
subset of keys is needed to build the package/core/thread topology:

    processor, vendor_id, cpu family, model, model name,
    physical id, core id, bugs

Those keys are consumed strictly in that order. Every other key (flags,
microcode, cpu MHz, power management, ...) is skipped so that new fields
added by the kernel do not break parsing.
"""

import re
from dataclasses import dataclass

REQUIRED_KEYS = (
    "processor",
    "vendor_id",
    "cpu family",
    "model",
    "model name",
    "physical id",
    "core id",
    "bugs",
)

# Keys whose values must be decimal integers
INT_KEYS = frozenset({"processor", "cpu family", "model", "physical id", "core id"})

LINE_PATTERN = re.compile(r"^\s*(?P<key>[^:]*?)\s*:\s*(?P<value>.*?)\s*$")


class ParseError(Exception):
    """Error parsing processor topology text."""

    def __init__(self, message: str, key: str | None = None, snippet: str | None = None):
        super().__init__(message)
        self.key = key
        self.snippet = snippet


@dataclass(frozen=True)
class LogicalProcessor:
    """One logical processor (hardware thread) from /proc/cpuinfo."""

    processor: int
    vendor_id: str
    family: int
    model: int
    model_name: str
    physical_id: int
    core_id: int
    bugs: frozenset[str]

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "LogicalProcessor":
        """Build a record from a complete set of required key values."""
        return cls(
            processor=int(fields["processor"]),
            vendor_id=fields["vendor_id"],
            family=int(fields["cpu family"]),
            model=int(fields["model"]),
            model_name=fields["model name"],
            physical_id=int(fields["physical id"]),
            core_id=int(fields["core id"]),
            bugs=frozenset(fields["bugs"].split()),
        )


def normalize_key(key: str) -> str:
    """Collapse whitespace runs inside a key ("model\\t name" -> "model name")."""
    return " ".join(key.split())


def split_line(line: str) -> tuple[str, str] | None:
    """
    Split a "key : value" line.

    Returns:
        (key, value) with surrounding whitespace removed, or None if the
        line has no colon
    """
    match = LINE_PATTERN.match(line)
    if match is None:
        return None
    return normalize_key(match.group("key")), match.group("value")


class _Accumulator:
    """Collects required keys for the record currently being parsed."""

    def __init__(self, required_keys: tuple[str, ...]):
        self.required_keys = required_keys
        self.fields: dict[str, str] = {}
        self.lines: list[str] = []

    @property
    def expected(self) -> str:
        return self.required_keys[len(self.fields)]

    @property
    def started(self) -> bool:
        return bool(self.fields)

    @property
    def complete(self) -> bool:
        return len(self.fields) == len(self.required_keys)

    def add(self, key: str, value: str, line: str) -> None:
        expected = self.expected
        if key != expected:
            raise ParseError(
                f'failed to match key "{expected}": {line!r}',
                key=expected,
                snippet=line,
            )
        if key in INT_KEYS:
            try:
                int(value)
            except ValueError:
                raise ParseError(
                    f'invalid value for key "{key}": {line!r}',
                    key=key,
                    snippet=line,
                ) from None
        self.fields[key] = value

    def truncated(self) -> ParseError:
        snippet = "\n".join(self.lines) + "\n"
        return ParseError(
            f'failed to match key "{self.expected}": {snippet!r}',
            key=self.expected,
            snippet=snippet,
        )


def parse_cpuinfo(
    content: str,
    required_keys: tuple[str, ...] = REQUIRED_KEYS,
) -> list[LogicalProcessor]:
    """
    Parse /proc/cpuinfo content into logical processor records.

    Args:
        content: Raw text of /proc/cpuinfo
        required_keys: Ordered keys every record must provide

    Returns:
        Records in input order

    Raises:
        ParseError: If a required key is missing or out of order, a numeric
            field is not an integer, or no processor is found at all
    """
    required = frozenset(required_keys)
    missing = set(REQUIRED_KEYS) - required
    if missing:
        raise ValueError(f"required_keys lacks record fields: {', '.join(sorted(missing))}")

    processors: list[LogicalProcessor] = []
    record = _Accumulator(required_keys)

    for line in content.splitlines():
        if not line.strip():
            # Block boundary
            if record.started:
                raise record.truncated()
            record = _Accumulator(required_keys)
            continue

        record.lines.append(line)

        parts = split_line(line)
        if parts is None:
            continue
        key, value = parts
        if key not in required:
            continue

        record.add(key, value, line)
        if record.complete:
            processors.append(LogicalProcessor.from_fields(record.fields))
            record = _Accumulator(required_keys)

    if record.started:
        raise record.truncated()

    if not processors:
        raise ParseError(f"no cpus found for: {content!r}", snippet=content)

    return processors
