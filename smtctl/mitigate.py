"""
Mitigate cross-thread side channels by switching SMT off.

A run reads the topology, decides on at most one write to the SMT control
file, performs it through an injected action and reads the topology again
so the operator can see what changed:

    read before -> decide -> action.apply(value) -> read after -> verify

Writing "off" to /sys/devices/system/cpu/smt/control takes every sibling
thread offline; writing "on" brings them back. The forward operation only
writes when the host is vulnerable, so repeating it is a no-op. The reverse
operation always writes "on".
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from smtctl.lib.filesystem import FileError, write_file
from smtctl.topology.cpuset import VULNERABLE_BUGS, CpuSet, load_cpuset
from smtctl.topology.parser import ParseError

if TYPE_CHECKING:
    from smtctl.core.context import Context
    from smtctl.core.logging import ScriptLogger

SMT_OFF = "off"
SMT_ON = "on"


class MismatchError(Exception):
    """The post-action topology matches none of the acceptable patterns."""

    def __init__(self, observed: str, acceptable: Iterable[str]):
        self.observed = observed
        self.acceptable = tuple(acceptable)
        super().__init__(
            f"mismatch: cpus {observed!r} match none of {list(self.acceptable)!r}"
        )


class MitigateError(Exception):
    """A mitigate or reverse operation failed at some step."""

    def __init__(self, operation: str, step: str, cause: Exception):
        self.operation = operation
        self.step = step
        self.cause = cause
        super().__init__(f"{operation} operation failed: {step}: {cause}")


class WriteAction:
    """Writes the control value to the SMT control file."""

    dry_run = False

    def __init__(self, path: str, context: "Context | None" = None):
        self.path = path
        self.context = context

    def describe(self, value: str) -> str:
        return f'writing "{value}" to {self.path}'

    def apply(self, value: str) -> None:
        write_file(self.path, value, context=self.context)


class DryRunAction:
    """Records the control value instead of writing it."""

    dry_run = True

    def __init__(self):
        self.applied: list[str] = []

    def describe(self, value: str) -> str:
        return f'dry run, not writing "{value}"'

    def apply(self, value: str) -> None:
        self.applied.append(value)


@dataclass(frozen=True)
class MitigationResult:
    """Outcome of one mitigate or reverse run."""

    operation: str
    before: CpuSet
    after: CpuSet
    control_value: str | None
    dry_run: bool

    @property
    def written(self) -> bool:
        """True if the control file was actually written."""
        return self.control_value is not None and not self.dry_run

    @property
    def status(self) -> str:
        if self.control_value is None:
            return "not-vulnerable"
        if self.dry_run:
            return "dry-run"
        if self.control_value == SMT_ON:
            return "restored"
        return "mitigated"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "operation": self.operation,
            "control_value": self.control_value,
            "written": self.written,
            "dry_run": self.dry_run,
            "vulnerable": self.before.is_vulnerable(),
            "vulnerabilities": self.before.vulnerabilities(),
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
        }


class Mitigator:
    """
    Decides and performs one SMT state transition.

    Args:
        cpuinfo_path: Topology file read before and after the action
        action: Object with apply(value) and describe(value); WriteAction
            for real runs, DryRunAction to skip the write
        reverse: Turn SMT on instead of off
        expected: Regular expressions; when given, the after snapshot's
            cpu list must fully match one of them
        context: Execution context (for testing)
        vulnerable_bugs: Bug tags treated as cross-thread exploitable
        logger: Optional ScriptLogger for decisions and snapshots
    """

    def __init__(
        self,
        cpuinfo_path: str,
        action: WriteAction | DryRunAction,
        reverse: bool = False,
        expected: Iterable[str] = (),
        context: "Context | None" = None,
        vulnerable_bugs: Iterable[str] = VULNERABLE_BUGS,
        logger: "ScriptLogger | None" = None,
    ):
        self.cpuinfo_path = cpuinfo_path
        self.action = action
        self.reverse = reverse
        self.expected = tuple(expected)
        self.context = context
        self.vulnerable_bugs = frozenset(vulnerable_bugs)
        self.logger = logger

        self._patterns = []
        for pattern in self.expected:
            try:
                self._patterns.append(re.compile(pattern))
            except re.error as e:
                raise ValueError(f"invalid expected pattern {pattern!r}: {e}") from e

    @property
    def operation(self) -> str:
        return "reverse" if self.reverse else "mitigate"

    def read(self) -> CpuSet:
        """Build a fresh CpuSet from the topology file."""
        return load_cpuset(self.cpuinfo_path, self.context, self.vulnerable_bugs)

    def decide(self, before: CpuSet) -> str | None:
        """
        Choose the control value to write, or None for no write.

        Reverse always turns SMT on. Forward turns it off only when the
        host is vulnerable.
        """
        if self.reverse:
            return SMT_ON
        if before.is_vulnerable():
            return SMT_OFF
        return None

    def verify(self, after: CpuSet) -> None:
        """
        Check the after snapshot against the acceptable patterns.

        Raises:
            MismatchError: If patterns are configured and none matches
        """
        if not self._patterns:
            return
        observed = str(after)
        if not any(p.fullmatch(observed) for p in self._patterns):
            raise MismatchError(observed, self.expected)

    def run(self) -> MitigationResult:
        """
        Perform the operation.

        Raises:
            MitigateError: Wrapping the ParseError, FileError or
                MismatchError of the step that failed
        """
        before = self._step("read before", self.read)
        self._log("info", f"CPUs before: {before}", **before.to_dict())

        value = self.decide(before)
        if value is None:
            self._log(
                "info",
                "CPUs are not vulnerable, nothing to do",
                threads_per_core=before.threads_per_core(),
            )
        else:
            self._log(
                "info",
                self.action.describe(value),
                vulnerabilities=before.vulnerabilities(),
            )
            self._step("action", self.action.apply, value)

        after = self._step("read after", self.read)
        self._log("info", f"CPUs after: {after}", **after.to_dict())

        self._step("verify", self.verify, after)

        return MitigationResult(
            operation=self.operation,
            before=before,
            after=after,
            control_value=value,
            dry_run=self.action.dry_run,
        )

    def _step(self, step: str, func, *args):
        try:
            return func(*args)
        except (ParseError, FileError, MismatchError) as e:
            self._log("error", f"{step} failed: {e}", operation=self.operation, step=step)
            raise MitigateError(self.operation, step, e) from e

    def _log(self, level: str, message: str, **extra: Any) -> None:
        if self.logger is not None:
            getattr(self.logger, level)(message, **extra)
