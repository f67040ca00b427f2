"""Package/core/thread topology built from parsed processor records."""

from typing import TYPE_CHECKING, Any, Iterable, Iterator

from smtctl.lib.filesystem import read_file
from smtctl.topology.parser import LogicalProcessor, ParseError, parse_cpuinfo

if TYPE_CHECKING:
    from smtctl.core.context import Context

# Bug tags from /proc/cpuinfo that sibling hyperthreads can exploit
# against each other. Disabling SMT removes the sibling.
VULNERABLE_BUGS = frozenset({
    "mds",              # Microarchitectural Data Sampling
    "l1tf",             # L1 Terminal Fault
    "taa",              # TSX Asynchronous Abort
    "mmio_stale_data",  # Processor MMIO Stale Data
    "mmio_unknown",
})


def format_cpu_list(cpus: Iterable[int]) -> str:
    """Format CPU numbers in kernel cpulist notation (e.g., '0-3,8,10-11')."""
    ordered = sorted(set(cpus))
    ranges = []
    i = 0
    while i < len(ordered):
        start = end = ordered[i]
        while i + 1 < len(ordered) and ordered[i + 1] == end + 1:
            i += 1
            end = ordered[i]
        ranges.append(str(start) if start == end else f"{start}-{end}")
        i += 1
    return ",".join(ranges)


class CpuSet:
    """
    Immutable view of the host's logical processors.

    Processors are grouped by physical package and then by core. A
    transiently inconsistent topology (cores reporting different thread
    counts, e.g. while SMT is being toggled) is modelled rather than
    rejected: the largest core decides threads_per_core and smaller cores
    count their missing threads as offline.
    """

    def __init__(
        self,
        processors: Iterable[LogicalProcessor],
        vulnerable_bugs: Iterable[str] = VULNERABLE_BUGS,
    ):
        self._processors = tuple(processors)
        if not self._processors:
            raise ParseError("no cpus found")
        self._vulnerable_bugs = frozenset(vulnerable_bugs)

        grouped: dict[int, dict[int, list[LogicalProcessor]]] = {}
        for cpu in self._processors:
            grouped.setdefault(cpu.physical_id, {}).setdefault(cpu.core_id, []).append(cpu)

        self._packages = {
            package: {core: tuple(threads) for core, threads in sorted(cores.items())}
            for package, cores in sorted(grouped.items())
        }

    @classmethod
    def from_cpuinfo(
        cls,
        content: str,
        vulnerable_bugs: Iterable[str] = VULNERABLE_BUGS,
    ) -> "CpuSet":
        """Parse /proc/cpuinfo text and build a CpuSet from it."""
        return cls(parse_cpuinfo(content), vulnerable_bugs=vulnerable_bugs)

    @property
    def processors(self) -> tuple[LogicalProcessor, ...]:
        """Processors in the order they were read."""
        return self._processors

    @property
    def packages(self) -> dict[int, dict[int, tuple[LogicalProcessor, ...]]]:
        """Package id -> core id -> threads, ids ascending."""
        return {package: dict(cores) for package, cores in self._packages.items()}

    def _cores(self) -> Iterator[tuple[LogicalProcessor, ...]]:
        for cores in self._packages.values():
            yield from cores.values()

    def num_cpus(self) -> int:
        return len(self._processors)

    def num_packages(self) -> int:
        return len(self._packages)

    def num_cores(self) -> int:
        return sum(len(cores) for cores in self._packages.values())

    def threads_per_core(self) -> int:
        """Thread count of the largest core."""
        return max(len(threads) for threads in self._cores())

    def offline_threads(self) -> int:
        """Threads missing from cores that are smaller than the largest one."""
        expected = self.threads_per_core()
        return sum(expected - len(threads) for threads in self._cores())

    def vulnerabilities(self) -> list[str]:
        """Cross-thread bug tags reported by any processor, sorted."""
        found: set[str] = set()
        for cpu in self._processors:
            found |= cpu.bugs & self._vulnerable_bugs
        return sorted(found)

    def is_vulnerable(self) -> bool:
        """
        True if sibling threads share a core and a cross-thread bug is reported.

        With one thread per core there is nothing left to disable, so such a
        set is never vulnerable whatever its bug tags say.
        """
        return self.threads_per_core() > 1 and bool(self.vulnerabilities())

    def cpu_list(self) -> list[int]:
        """Sorted processor numbers."""
        return sorted({cpu.processor for cpu in self._processors})

    def to_dict(self) -> dict[str, Any]:
        """Summary for structured output."""
        first = self._processors[0]
        return {
            "cpus": str(self),
            "num_cpus": self.num_cpus(),
            "packages": self.num_packages(),
            "cores": self.num_cores(),
            "threads_per_core": self.threads_per_core(),
            "offline_threads": self.offline_threads(),
            "vendor": first.vendor_id,
            "model_name": first.model_name,
            "vulnerabilities": self.vulnerabilities(),
            "vulnerable": self.is_vulnerable(),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CpuSet):
            return NotImplemented
        return (
            self._processors == other._processors
            and self._vulnerable_bugs == other._vulnerable_bugs
        )

    def __hash__(self) -> int:
        return hash((self._processors, self._vulnerable_bugs))

    def __str__(self) -> str:
        return format_cpu_list(self.cpu_list())

    def __repr__(self) -> str:
        return (
            f"CpuSet(cpus={str(self)!r}, packages={self.num_packages()}, "
            f"cores={self.num_cores()}, threads_per_core={self.threads_per_core()})"
        )


def load_cpuset(
    path: str,
    context: "Context | None" = None,
    vulnerable_bugs: Iterable[str] = VULNERABLE_BUGS,
) -> CpuSet:
    """
    Read a /proc/cpuinfo style file and build a fresh CpuSet.

    Raises:
        FileError: If the file cannot be read
        ParseError: If the content cannot be parsed
    """
    content = read_file(path, context=context)
    return CpuSet.from_cpuinfo(content, vulnerable_bugs=vulnerable_bugs)
