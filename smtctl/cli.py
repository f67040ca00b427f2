"""Command-line interface for smtctl."""

import argparse
import sys
from pathlib import Path

from smtctl import __version__
from smtctl.core import (
    ConfigError,
    Context,
    Output,
    ScriptLogger,
    Settings,
    get_log_path,
    load_settings,
)
from smtctl.lib.filesystem import FileError, file_exists
from smtctl.mitigate import DryRunAction, MitigateError, Mitigator, WriteAction
from smtctl.topology import ParseError, load_cpuset

# Machine name prefixes of architectures not affected by MDS-class issues
ARM_MACHINE_PREFIXES = ("arm", "aarch64")

MITIGATE_DESCRIPTION = """\
Mitigate the host against cross-thread side channels ("MDS" and related
issues) by writing "off" to the SMT control file when the CPUs report a
vulnerable bug and run more than one thread per core.

Sibling threads can be restored by writing "on" to the same file, by
running with --reverse, or by rebooting the host."""


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="smtctl",
        description="Detect cross-thread CPU vulnerabilities and toggle SMT",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"smtctl {__version__}",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        default="plain",
        help="Output format (default: plain)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file (overrides .smtctl.yaml and ~/.config/smtctl/config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Write debug entries to the log",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # mitigate command
    mitigate_parser = subparsers.add_parser(
        "mitigate",
        help="Disable SMT if the CPUs are vulnerable",
        description=MITIGATE_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    mitigate_parser.add_argument(
        "--dryrun",
        action="store_true",
        help="Run the command without changing the system",
    )
    mitigate_parser.add_argument(
        "--reverse",
        action="store_true",
        help="Reverse mitigate by enabling all sibling threads",
    )
    mitigate_parser.add_argument(
        "--expect",
        action="append",
        dest="expected",
        metavar="REGEX",
        help="Acceptable cpu list after the action (can be specified multiple times)",
    )

    # status command
    subparsers.add_parser("status", help="Show CPU topology and vulnerability")

    return parser


def is_arm(machine: str) -> bool:
    """True for every 32 and 64 bit ARM machine name."""
    return machine.lower().startswith(ARM_MACHINE_PREFIXES)


def _load_settings(args: argparse.Namespace) -> Settings | None:
    """Resolve settings, reporting a bad --config as a usage error."""
    try:
        return load_settings(args.config)
    except ConfigError as e:
        print(f"smtctl {args.command}: {e}", file=sys.stderr)
        return None


def cmd_mitigate(args: argparse.Namespace, context: Context) -> int:
    """Disable (or with --reverse, enable) SMT."""
    if is_arm(context.machine()):
        print(
            "As ARM is not affected by MDS, mitigate does not support this host",
            file=sys.stderr,
        )
        return 1

    settings = _load_settings(args)
    if settings is None:
        return 2
    operation = "reverse" if args.reverse else "mitigate"

    if args.dryrun:
        action = DryRunAction()
    else:
        action = WriteAction(settings.smt_control_path, context)

    log_path = get_log_path("mitigate", settings.log_dir)
    min_level = "debug" if args.verbose else "info"

    with ScriptLogger("mitigate", log_path=log_path, min_level=min_level) as logger:
        logger.debug(
            "settings",
            cpuinfo_path=settings.cpuinfo_path,
            smt_control_path=settings.smt_control_path,
            dry_run=args.dryrun,
            reverse=args.reverse,
        )
        try:
            mitigator = Mitigator(
                settings.cpuinfo_path,
                action,
                reverse=args.reverse,
                expected=args.expected or settings.expected_for(operation),
                context=context,
                vulnerable_bugs=settings.vulnerable_bugs,
                logger=logger,
            )
        except ValueError as e:
            print(f"smtctl mitigate: {e}", file=sys.stderr)
            return 2

        try:
            result = mitigator.run()
        except MitigateError as e:
            print(f"Error: {e}", file=sys.stderr)
            if logger.failure:
                print(f"Warning: {logger.failure}", file=sys.stderr)
            return 1

    output = Output()
    output.emit(result.to_dict())

    if logger.failure:
        output.warning(logger.failure)

    if result.after.offline_threads():
        output.warning(
            f"{result.after.offline_threads()} thread(s) missing from partially populated cores"
        )

    if result.status == "not-vulnerable":
        output.set_summary(
            f"CPUs not vulnerable ({result.before.threads_per_core()} thread(s)/core), "
            "SMT left unchanged"
        )
    elif result.status == "dry-run":
        output.set_summary(
            f'Dry run: would write "{result.control_value}" to {settings.smt_control_path}'
        )
    elif result.status == "restored":
        output.set_summary(f"SMT enabled: CPUs {result.before} -> {result.after}")
    else:
        output.set_summary(f"SMT disabled: CPUs {result.before} -> {result.after}")

    output.render(args.format, "SMT Mitigation")
    return 0


def cmd_status(args: argparse.Namespace, context: Context) -> int:
    """Show topology and vulnerability without changing anything."""
    settings = _load_settings(args)
    if settings is None:
        return 2

    try:
        cpuset = load_cpuset(settings.cpuinfo_path, context, settings.vulnerable_bugs)
    except (FileError, ParseError) as e:
        print(f"Error: status operation failed: {e}", file=sys.stderr)
        return 1

    output = Output()
    output.emit({
        "status": "vulnerable" if cpuset.is_vulnerable() else "not-vulnerable",
        "topology": cpuset.to_dict(),
        "smt_control": {
            "path": settings.smt_control_path,
            "present": file_exists(settings.smt_control_path, context),
        },
    })

    if cpuset.offline_threads():
        output.warning(
            f"{cpuset.offline_threads()} thread(s) missing from partially populated cores"
        )

    if cpuset.is_vulnerable():
        output.set_summary(
            f"Vulnerable: {', '.join(cpuset.vulnerabilities())} with "
            f"{cpuset.threads_per_core()} threads/core"
        )
    else:
        output.set_summary(f"Not vulnerable: CPUs {cpuset}")

    output.render(args.format, "CPU Topology")
    return 0


def main(argv: list[str] | None = None, context: Context | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if context is None:
        context = Context()

    commands = {
        "mitigate": cmd_mitigate,
        "status": cmd_status,
    }

    return commands[args.command](args, context)


if __name__ == "__main__":
    sys.exit(main())
