"""
ChildFirst CLI - Argument parsing and dispatch.

Responsibilities:
- Argument parsing
- Data directory setup
- Interactive capture prompts
- Printing results/errors
- Exit codes (0 success, 1 failure, 2 usage)

Forbidden:
- No filtering, formatting or persistence logic (delegated to the core)
"""

import argparse
import logging
import sys
from pathlib import Path

from childfirst import __version__
from childfirst.errors import ChildFirstError

logger = logging.getLogger(__name__)


# =============================================================================
# Parser
# =============================================================================


def _severity_band(value: str) -> str:
    from childfirst.query import SeverityBand

    try:
        SeverityBand.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return value


def _severity(value: str) -> int:
    try:
        severity = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid severity: {value!r}") from exc
    if not 1 <= severity <= 5:
        raise argparse.ArgumentTypeError("severity must be between 1 and 5")
    return severity


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--search", default="", help="Case-insensitive text in transcript or category.")
    parser.add_argument("--category", default="all", help="Exact category, or 'all' (default).")
    parser.add_argument(
        "--severity",
        type=_severity_band,
        default="all",
        metavar="BAND",
        help="Severity band: all, 1-2 (low), 3-3 (medium), 4-5 (high) (default: all).",
    )
    parser.add_argument(
        "--sort",
        choices=["newest", "oldest"],
        default="newest",
        help="Sort order by timestamp (default: newest).",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="childfirst",
        description="ChildFirst incident capture and documentation.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--data-dir",
        metavar="PATH",
        help="Local data directory (default: $CHILDFIRST_HOME or ./childfirst_data).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable informational logging.")

    subparsers = parser.add_subparsers(dest="command")

    record = subparsers.add_parser(
        "record",
        help="Record an incident with the microphone.",
        description=(
            "Record an incident with the microphone.\n\n"
            "Press Enter to pause/resume, type 's' and Enter to stop.\n"
            "Then review the transcript and add category, severity and people."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    record.add_argument("--category", help="Category to save with (prompted if omitted).")
    record.add_argument("--severity", type=_severity, help="Severity 1-5 (prompted if omitted).")
    record.add_argument("--person", action="append", dest="people", metavar="NAME", help="Person involved (repeatable).")

    add = subparsers.add_parser("add", help="Add an incident from typed text.")
    add.add_argument("--category", required=True, help="Incident category.")
    add.add_argument("--severity", type=_severity, default=3, help="Severity 1-5 (default: 3).")
    add.add_argument("--person", action="append", dest="people", metavar="NAME", help="Person involved (repeatable).")
    add.add_argument("--location", help="Location text (e.g. '-37.813600, 144.963100').")
    add.add_argument("transcript", help="Transcript text, or '-' to read from stdin.")

    listing = subparsers.add_parser("list", help="List incidents.")
    add_filter_arguments(listing)
    listing.add_argument("--full", action="store_true", help="Print full transcripts.")

    delete = subparsers.add_parser("delete", help="Delete one incident.")
    delete.add_argument("incident_id", metavar="ID", help="Incident id.")

    subparsers.add_parser("stats", help="Show dashboard statistics and storage usage.")

    for name, help_text in (
        ("export-csv", "Export the filtered timeline as CSV."),
        ("export-pdf", "Export the filtered timeline as a PDF report."),
    ):
        export = subparsers.add_parser(name, help=help_text)
        add_filter_arguments(export)
        export.add_argument("--output-dir", metavar="PATH", help="Output directory (default: <data-dir>/exports).")

    court = subparsers.add_parser("court-report", help="Generate the court documentation PDF.")
    court.add_argument("--child-name", default="", help="Child's name.")
    court.add_argument("--dob", default="", help="Child's date of birth.")
    court.add_argument("--diagnosis", default="", help="Diagnosis.")
    court.add_argument("--purpose", default="", help="Report purpose.")
    court.add_argument("--notes", default="", help="Additional notes.")
    court.add_argument("--output-dir", metavar="PATH", help="Output directory (default: <data-dir>/exports).")

    backup = subparsers.add_parser("backup", help="Write a full JSON backup.")
    backup.add_argument("--output-dir", metavar="PATH", help="Output directory (default: <data-dir>/exports).")

    restore = subparsers.add_parser("restore", help="Replace all data from a JSON backup.")
    restore.add_argument("backup_file", metavar="FILE", help="Backup file to import.")

    reset = subparsers.add_parser("reset", help="Delete all incidents and restore default settings.")
    reset.add_argument("--yes", action="store_true", help="Confirm deletion.")

    return parser


# =============================================================================
# Helpers
# =============================================================================


def _open(args: argparse.Namespace):
    """Return (context, store, settings) for the selected data directory."""
    from childfirst.config import load_settings
    from childfirst.context import AppContext
    from childfirst.store import JsonFileStore

    ctx = AppContext.for_directory(args.data_dir).ensure()
    return ctx, JsonFileStore(ctx.incidents_path), load_settings(ctx.settings_path)


def _output_dir(args: argparse.Namespace, ctx) -> Path:
    out = Path(args.output_dir) if args.output_dir else ctx.exports_dir
    out.mkdir(parents=True, exist_ok=True)
    return out


def _filtered(args: argparse.Namespace, store):
    from childfirst.query import view

    return view(store.list(), args.search, args.category, args.severity, args.sort)


def _print_incident(incident, full: bool = False) -> None:
    from childfirst.query import impact_label
    from childfirst.utils import format_timestamp

    transcript = incident.transcript
    if not full and len(transcript) > 80:
        transcript = transcript[:77] + "..."
    print(f"{incident.id}  {format_timestamp(incident.timestamp)}  {incident.category}  "
          f"severity {incident.severity} ({impact_label(incident.severity)})")
    if incident.location:
        print(f"    Location: {incident.location}")
    if incident.people_involved:
        print(f"    People: {', '.join(incident.people_involved)}")
    print(f"    {transcript}")


def _prompt(text: str, default: str = "") -> str:
    answer = input(text).strip()
    return answer or default


def _prompt_category() -> str:
    from childfirst.incident import CATEGORIES

    for number, category in enumerate(CATEGORIES, start=1):
        print(f"  {number:2d}. {category}")
    answer = _prompt("Category (number or custom label): ")
    if answer.isdigit() and 1 <= int(answer) <= len(CATEGORIES):
        return CATEGORIES[int(answer) - 1]
    return answer


def _prompt_severity() -> int:
    from childfirst.incident import DEFAULT_SEVERITY

    answer = _prompt(f"Severity 1-5 [{DEFAULT_SEVERITY}]: ", str(DEFAULT_SEVERITY))
    return int(answer) if answer.isdigit() else -1


def _prompt_people() -> list[str]:
    from childfirst.incident import COMMON_PEOPLE

    print("People involved: " + ", ".join(COMMON_PEOPLE))
    answer = _prompt("Comma-separated (blank for none): ")
    return [p for p in answer.split(",") if p.strip()]


# =============================================================================
# Commands
# =============================================================================


def cmd_record(args: argparse.Namespace) -> int:
    """Interactive capture: start, pause/resume, stop, review, save."""
    from childfirst.builder import IncidentBuilder
    from childfirst.devices import build_controller
    from childfirst.errors import ValidationError

    ctx, store, settings = _open(args)
    controller = build_controller(settings)
    builder = IncidentBuilder(store)

    if not controller.start():
        print("Error: Recording could not be started.", file=sys.stderr)
        return 1
    print("Recording started. Speak clearly for best transcription results.")
    print("Enter = pause/resume, 's' + Enter = stop.")

    try:
        while True:
            command = input().strip().lower()
            if command in ("s", "stop"):
                controller.stop()
                break
            controller.toggle_pause()
            print(f"[{controller.status.value} {controller.elapsed_display}] {controller.poll()}")
            if controller.last_recognition_error:
                print(f"Recognition stopped: {controller.last_recognition_error}", file=sys.stderr)

        print("Recording stopped. Review and save your incident report.")
        transcript = controller.session.pending_transcript
        print(f"\nTranscript:\n{transcript or '(empty)'}\n")
        edited = _prompt("Replace transcript (blank to keep): ")
        if edited:
            controller.edit_transcript(edited)

        category = args.category
        severity = args.severity
        people = args.people
        while True:
            category = category or _prompt_category()
            severity = severity or _prompt_severity()
            if people is None:
                people = _prompt_people()
            try:
                incident = builder.save(controller, category, severity, people)
                break
            except ValidationError as e:
                print(f"Error: {e}", file=sys.stderr)
                if "transcript" in e.fields:
                    controller.edit_transcript(_prompt("Transcript: "))
                if "category" in e.fields:
                    category = None
                if "severity" in e.fields:
                    severity = None
    except (KeyboardInterrupt, EOFError):
        controller.reset()
        print("\nRecording discarded.", file=sys.stderr)
        return 1

    print(f"Incident saved: {incident.id}")
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    """Manual entry path: no capture, timestamp = now."""
    from childfirst.builder import build_incident
    from childfirst.session import RecordingSession, SessionStatus

    ctx, store, settings = _open(args)
    text = sys.stdin.read() if args.transcript == "-" else args.transcript
    session = RecordingSession(
        status=SessionStatus.IDLE,
        pending_transcript=text,
        captured_location=args.location,
    )
    incident = build_incident(session, args.category, args.severity, args.people or ())
    store.append(incident)
    print(f"Incident saved: {incident.id}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    ctx, store, settings = _open(args)
    incidents = _filtered(args, store)
    if not incidents:
        print("No incidents found.")
        return 0
    for incident in incidents:
        _print_incident(incident, full=args.full)
    print(f"\n{len(incidents)} incident(s)")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    ctx, store, settings = _open(args)
    if not store.remove(args.incident_id):
        print(f"Error: Incident not found: {args.incident_id}", file=sys.stderr)
        return 1
    print(f"Incident deleted: {args.incident_id}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    from childfirst.query import dashboard_stats
    from childfirst.utils import format_bytes

    ctx, store, settings = _open(args)
    incidents = store.list()
    stats = dashboard_stats(incidents)
    print(f"Total incidents: {stats['total']}")
    print(f"This week: {stats['this_week']}")
    print(f"Average severity: {stats['avg_severity']}")
    print(f"Most common category: {stats['most_common_category'] or 'No data'}")
    print(f"Storage used: {format_bytes(store.size_bytes())} in {ctx.data_dir}")
    if stats["recent"]:
        print("\nRecent incidents:")
        for incident in stats["recent"]:
            _print_incident(incident)
    return 0


def cmd_export_csv(args: argparse.Namespace) -> int:
    from childfirst.export import timeline_csv_filename
    from childfirst.export.tabular import write_csv

    ctx, store, settings = _open(args)
    path = write_csv(_output_dir(args, ctx) / timeline_csv_filename(), _filtered(args, store))
    print(f"Timeline data exported: {path}")
    return 0


def cmd_export_pdf(args: argparse.Namespace) -> int:
    from childfirst.export import timeline_pdf_filename
    from childfirst.export.document import timeline_report

    ctx, store, settings = _open(args)
    path = _output_dir(args, ctx) / timeline_pdf_filename()
    timeline_report(_filtered(args, store)).output(str(path))
    print(f"Timeline report exported: {path}")
    return 0


def cmd_court_report(args: argparse.Namespace) -> int:
    from childfirst.export import court_report_filename
    from childfirst.export.document import CaseDetails, court_report

    ctx, store, settings = _open(args)
    case = CaseDetails(
        child_name=args.child_name,
        date_of_birth=args.dob,
        diagnosis=args.diagnosis,
        purpose=args.purpose,
        notes=args.notes,
    )
    incidents = store.list()
    if not incidents:
        print("Warning: No incidents recorded; the report contains the summary only.", file=sys.stderr)
    path = _output_dir(args, ctx) / court_report_filename()
    court_report(incidents, case).output(str(path))
    print(f"Court report generated: {path}")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    from childfirst.export import backup_filename
    from childfirst.export.backup import create_backup, write_backup

    ctx, store, settings = _open(args)
    document = create_backup(store, settings)
    path = write_backup(_output_dir(args, ctx) / backup_filename(document["exportDate"]), document)
    print(f"Backup written: {path} ({len(document['incidents'])} incidents)")
    return 0


def cmd_restore(args: argparse.Namespace) -> int:
    from childfirst.export.backup import restore_backup

    backup_path = Path(args.backup_file)
    if not backup_path.is_file():
        print(f"Error: Backup file not found: {backup_path}", file=sys.stderr)
        return 1
    ctx, store, settings = _open(args)
    count = restore_backup(backup_path.read_text(encoding="utf-8"), store, ctx.settings_path)
    print(f"Imported {count} incidents.")
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    from childfirst.export.backup import reset_all

    if not args.yes:
        print("Error: Refusing to delete all data without --yes", file=sys.stderr)
        return 1
    ctx, store, settings = _open(args)
    reset_all(store, ctx.settings_path)
    print("All data cleared.")
    return 0


COMMANDS = {
    "record": cmd_record,
    "add": cmd_add,
    "list": cmd_list,
    "delete": cmd_delete,
    "stats": cmd_stats,
    "export-csv": cmd_export_csv,
    "export-pdf": cmd_export_pdf,
    "court-report": cmd_court_report,
    "backup": cmd_backup,
    "restore": cmd_restore,
    "reset": cmd_reset,
}


def run(argv: list[str] | None = None) -> int:
    """Parse argv and run one command; returns the exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return COMMANDS[args.command](args)
    except ChildFirstError as e:
        logger.debug("Command failed: %s", e.error)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Main entry point."""
    sys.exit(run())
