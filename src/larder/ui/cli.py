from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from larder.app import check_files, export_entities, reconcile_files
from larder.config import configure_logging
from larder.domain.errors import BatchConflictError, BatchValidationError
from larder.domain.model import AliasMode, EntityKind, RunMode

from .report import report_conflicts, report_result

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_VALIDATION = 2


def _parse_kind(value: str) -> EntityKind:
    normalized = value.strip().casefold()
    for kind in EntityKind:
        if normalized in (kind.value, kind.envelope_type.casefold()):
            return kind
    choices = ", ".join(kind.value for kind in EntityKind)
    raise argparse.ArgumentTypeError(f"unknown entity kind {value!r} (choose from {choices})")


def _add_reconcile_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "kind", type=_parse_kind, help="Entity kind: food, unit, category, tag, tool"
    )
    parser.add_argument("files", nargs="+", help="Batch files; several files are checked together")
    parser.add_argument(
        "--replace-aliases",
        action="store_true",
        help="Replace stored aliases with the file's aliases instead of merging them",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the full plan without changing anything",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile Mealie foods, units and organizers")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Create missing entities")
    _add_reconcile_arguments(import_parser)
    import_parser.add_argument(
        "--update",
        action="store_true",
        help="Also update entities that already exist",
    )

    mirror = subparsers.add_parser(
        "mirror",
        help="Import, update, and delete unused entities missing from the files",
    )
    _add_reconcile_arguments(mirror)
    mirror.add_argument(
        "--no-update",
        action="store_true",
        help="Leave existing entities untouched",
    )

    check = subparsers.add_parser("check", help="Validate files and report key conflicts")
    check.add_argument("kind", type=_parse_kind, help="Entity kind")
    check.add_argument("files", nargs="+", help="Batch files")

    export = subparsers.add_parser("export", help="Write current entities to a batch file")
    export.add_argument("kind", type=_parse_kind, help="Entity kind")
    export.add_argument("file", help="Output path")

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        if parsed_args.command == "check":
            conflicts = check_files(parsed_args.kind, parsed_args.files)
            if conflicts:
                report_conflicts(conflicts)
                sys.exit(EXIT_VALIDATION)
        elif parsed_args.command == "export":
            count = export_entities(parsed_args.kind, parsed_args.file)
            log.info("Exported %s %s(s) to %s", count, parsed_args.kind, parsed_args.file)
        elif parsed_args.command in ("import", "mirror"):
            mirror = parsed_args.command == "mirror"
            result = reconcile_files(
                parsed_args.kind,
                parsed_args.files,
                mode=RunMode.MIRROR if mirror else RunMode.IMPORT,
                update_existing=not parsed_args.no_update if mirror else parsed_args.update,
                alias_mode=AliasMode.REPLACE if parsed_args.replace_aliases else None,
                dry_run=parsed_args.dry_run,
            )
            report_result(result)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except BatchConflictError as exc:
        report_conflicts(exc.conflicts)
        log.error("Aborted before any change: %s conflict(s)", len(exc.conflicts))  # noqa: TRY400
        sys.exit(EXIT_VALIDATION)
    except BatchValidationError as exc:
        log.error("Aborted before any change: %s", exc)  # noqa: TRY400
        sys.exit(EXIT_VALIDATION)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(EXIT_FATAL)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
