#!/usr/bin/env python3
"""
soulsynth Command Line Interface

Main entry point for the `soulsynth` command.

Usage:
    soulsynth synthesize --signals signals.json     # Incremental run
    soulsynth synthesize --force --dry-run --diff   # Preview a forced run
    soulsynth status --verbose                      # Pending content and counts
    soulsynth rollback --list                       # Show backups
    soulsynth rollback --backup <id> --force        # Restore a backup
    soulsynth audit --stats                         # Tier/dimension distribution
    soulsynth audit ax_1234                         # Full provenance chain
    soulsynth trace 誠                              # Fast axiom -> source path
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from soulsynth import __version__
from soulsynth.logging_config import get_logger, setup_logging
from soulsynth.models import NotationFormat

logger = get_logger(__name__)


def _print_warnings(result: dict) -> None:
    for warning in result.get("warnings", []):
        print(f"  ! {warning}")


def _print_error(result: dict) -> int:
    print(f"Error: {result['error']}")
    if result.get("recommendation"):
        print(f"  {result['recommendation']}")
    return 1


def _emit_json(result: dict) -> int:
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    return 0 if result.get("success") else 1


def cmd_synthesize(args):
    """Handle synthesize subcommand."""
    from soulsynth.commands import synthesize

    result = asyncio.run(synthesize(
        args.workspace,
        signals_file=args.signals,
        force=args.force,
        dry_run=args.dry_run,
        fmt=args.format,
        diff=args.diff,
        config_path=args.config,
    ))
    if args.json:
        return _emit_json(result)
    if not result["success"]:
        return _print_error(result)

    data = result["data"]
    if not data["ran"]:
        print(data["skipped_reason"])
        print("Use --force to run anyway.")
        return 0

    metrics = data["metrics"]
    print("Synthesis" + (" (dry run)" if data["dry_run"] else ""))
    print("=" * 40)
    print(f"Signals:    {data['signal_count']}")
    print(f"Principles: {data['principle_count']}")
    print(f"Axioms:     {data['axiom_count']} (N>={data['cascade']['effective_floor']})")
    print(f"Compression: {metrics['compression_ratio']}:1")
    for axiom in data["axioms"]:
        label = axiom["notated"] or axiom["text"]
        print(f"  [{axiom['tier']}] {label} (N={axiom['n_count']})")

    if data["backup_id"]:
        print(f"\nBackup: {data['backup_id']}")
    if data["committed"]:
        print("Committed to git")
    if data["diff"] is not None:
        print()
        print(data["diff"] or "No changes.")

    _print_warnings(result)
    return 0


def cmd_status(args):
    """Handle status subcommand."""
    from soulsynth.commands import status

    result = status(args.workspace, verbose=args.verbose, config_path=args.config)
    if args.json:
        return _emit_json(result)
    if not result["success"]:
        return _print_error(result)

    data = result["data"]
    print("soulsynth Status\n" + "=" * 40)
    print(f"Last run:  {data['last_run_at'] or 'never'} (runs: {data['run_count']})")
    print(f"Pending:   {data['pending_size']:,} / {data['threshold']:,} chars")
    print(f"Status:    {'ready for synthesis' if data['ready'] else 'below threshold'}")
    counts = data["counts"]
    print(
        f"Counts:    {counts['signals']} signals, {counts['principles']} principles, "
        f"{counts['axioms']} axioms, {counts['backups']} backups"
    )
    print(f"Document:  {data['document']} ({data['integrity']})")

    if args.verbose:
        print(f"\nNew files: {len(data['new_files'])}")
        for name in data["new_files"]:
            print(f"  + {name}")
        print(f"Modified files: {len(data['modified_files'])}")
        for name in data["modified_files"]:
            print(f"  ~ {name}")
        print("\nAxioms by dimension:")
        for dimension, count in data["coverage"].items():
            print(f"  {dimension}: {count}")

    _print_warnings(result)
    return 0


def cmd_rollback(args):
    """Handle rollback subcommand."""
    from soulsynth.commands import rollback

    result = rollback(
        args.workspace,
        list_only=args.list,
        backup_id=args.backup,
        force=args.force,
        config_path=args.config,
    )
    if args.json:
        return _emit_json(result)
    if not result["success"]:
        return _print_error(result)

    data = result["data"]
    if args.list:
        if not data["backups"]:
            print("No backups found.")
            return 0
        print("Available backups (newest first):")
        for backup in data["backups"]:
            print(f"  {backup['id']}  {backup['size']:>7} bytes  {backup['age']}")
        return 0

    print(f"Restored {data['document']} from {data['restored']}")
    _print_warnings(result)
    return 0


def cmd_audit(args):
    """Handle audit subcommand."""
    from soulsynth.commands import audit

    result = audit(
        args.workspace,
        list_only=args.list,
        stats=args.stats,
        axiom_id=args.axiom,
        config_path=args.config,
    )
    if args.json:
        return _emit_json(result)
    if not result["success"]:
        return _print_error(result)

    data = result["data"]
    if args.axiom:
        axiom = data["axiom"]
        print(f"{axiom['notated'] or axiom['text']}  [{axiom['tier']}, N={axiom['n_count']}]")
        print(f"  {axiom['text']}")
        for principle in data["chain"]["principles"]:
            print(f"  <- \"{principle['text']}\" (N={principle['n_count']})")
            for source in principle["sources"]:
                where = f"{source['file']}:{source['line']}" if source["line"] else source["file"]
                print(f"       <- \"{source['text']}\" {where}")
    elif "by_tier" in data:
        print(f"Axioms: {data['axioms']}  Principles: {data['principles']}  Signals: {data['signals']}")
        print("By tier:")
        for tier, count in data["by_tier"].items():
            print(f"  {tier}: {count}")
        print("By dimension:")
        for dimension, count in data["by_dimension"].items():
            print(f"  {dimension}: {count}")
        print(f"Intact chains: {data['intact_chains']}/{data['axioms']}")
    else:
        if not data["axioms"]:
            print("No axioms yet. Run `soulsynth synthesize` first.")
        for axiom in data["axioms"]:
            label = axiom["notated"] or axiom["text"]
            print(f"  {axiom['id']}  [{axiom['tier']}] {label} (N={axiom['n_count']})")

    _print_warnings(result)
    return 0


def cmd_trace(args):
    """Handle trace subcommand."""
    from soulsynth.commands import trace

    result = trace(args.workspace, args.axiom, config_path=args.config)
    if args.json:
        return _emit_json(result)
    if not result["success"]:
        return _print_error(result)

    data = result["data"]
    axiom = data["axiom"]
    print(axiom["notated"] or axiom["text"])
    principle = data["principle"]
    if principle is None:
        print("  (no resolvable principle)")
    else:
        print(f"  └── \"{principle['text']}\" (N={principle['n_count']})")
        for source in principle["sources"]:
            where = f"{source['file']}:{source['line']}" if source["line"] else source["file"]
            print(f"        └── {where}")

    _print_warnings(result)
    return 0


def cmd_version(args):
    """Show version information."""
    print(f"soulsynth {__version__}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="soulsynth",
        description="soulsynth - distill memory into tiered identity axioms",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )
    parser.add_argument(
        "--workspace", "-w", type=Path, default=Path.cwd(), help="Workspace root (default: cwd)"
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="Config file (default: args/synthesis.yaml)"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print raw JSON results"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # synthesize
    synth_parser = subparsers.add_parser(
        "synthesize", help="Fold new signals into principles and regenerate the document"
    )
    synth_parser.add_argument(
        "--signals", type=Path, default=None, help="JSON file of newly extracted signals"
    )
    synth_parser.add_argument(
        "--force", "-f", action="store_true", help="Run even below the content threshold"
    )
    synth_parser.add_argument(
        "--dry-run", action="store_true", help="Compute everything but write nothing"
    )
    synth_parser.add_argument(
        "--format", choices=[f.value for f in NotationFormat], default=None,
        help="Notation format override",
    )
    synth_parser.add_argument(
        "--diff", action="store_true", help="Show a unified diff against the current document"
    )
    synth_parser.set_defaults(func=cmd_synthesize)

    # status
    status_parser = subparsers.add_parser(
        "status", help="Show last run, pending content and artifact counts"
    )
    status_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show per-file and per-dimension detail"
    )
    status_parser.set_defaults(func=cmd_status)

    # rollback
    rollback_parser = subparsers.add_parser(
        "rollback", help="Restore the document from a backup"
    )
    rollback_parser.add_argument(
        "--list", "-l", action="store_true", help="List available backups"
    )
    rollback_parser.add_argument(
        "--backup", "-b", default=None, help="Backup id to restore (default: latest)"
    )
    rollback_parser.add_argument(
        "--force", "-f", action="store_true", help="Confirm the restore"
    )
    rollback_parser.set_defaults(func=cmd_rollback)

    # audit
    audit_parser = subparsers.add_parser(
        "audit", help="Inspect axioms and their provenance"
    )
    audit_parser.add_argument(
        "axiom", nargs="?", default=None, help="Axiom id or notation symbol"
    )
    audit_parser.add_argument(
        "--list", "-l", action="store_true", help="List all axioms"
    )
    audit_parser.add_argument(
        "--stats", "-s", action="store_true", help="Show tier and dimension statistics"
    )
    audit_parser.set_defaults(func=cmd_audit)

    # trace
    trace_parser = subparsers.add_parser(
        "trace", help="Show the fastest path from an axiom to its sources"
    )
    trace_parser.add_argument("axiom", help="Axiom id or notation symbol")
    trace_parser.set_defaults(func=cmd_trace)

    args = parser.parse_args()

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return

    setup_logging()
    logger.debug("command", command=args.command, workspace=str(args.workspace))

    # Execute command
    result = args.func(args)

    # Commands may return an exit code
    if isinstance(result, int) and result != 0:
        sys.exit(result)


if __name__ == "__main__":
    main()
