import argparse
import curses
import os
import sys

# Make ESC snappy
os.environ.setdefault("ESCDELAY", "25")

from _version import __version__
from config_paths import LOG_PATH, ensure_config_dirs, load_config
from errors import NotFoundError, ValidationError, WorkspaceError
from logging_setup import get_logger, setup_logging
from orchestrator import Orchestrator
from search_merger import ALL_COLUMNS
from workspace import Workspace

logger = get_logger(__name__)

USAGE = (
    "gridspace - terminal workspace for searching, formatting and exporting records\n\n"
    "Usage:\n"
    "  gridspace [path]\n"
    "  gridspace path [--search QUERY] [--column NAME] [--sort COL:MODE]\n"
    "                 [--filter BUCKET] --export FILE\n"
    "  gridspace -v\n"
)


def build_parser():
    ap = argparse.ArgumentParser(prog="gridspace", add_help=False)
    ap.add_argument("path", nargs="?")
    ap.add_argument("-v", "-V", "--version", dest="version", action="store_true")
    ap.add_argument("-h", "--help", dest="help", action="store_true")
    ap.add_argument("--search", help="Query merged into the workspace before export.")
    ap.add_argument("--column", default=ALL_COLUMNS, help="Column to match exactly (default All).")
    ap.add_argument("--sort", help="COLUMN:MODE, e.g. Date:date-desc.")
    ap.add_argument("--filter", help="Date bucket, e.g. this-week.")
    ap.add_argument("--export", help="Output file; .csv, .png, .pdf or .json.")
    return ap


def parse_sort(text: str) -> tuple[str, str]:
    column, sep, mode = (text or "").rpartition(":")
    if not sep or not column.strip() or not mode.strip():
        raise ValidationError("--sort expects COLUMN:MODE")
    return column.strip(), mode.strip().lower()


def export_kind(path: str) -> str:
    _, ext = os.path.splitext(path)
    return ext.lower().lstrip(".")


def run_batch(args, config) -> int:
    ws = Workspace(config)
    try:
        if not args.path:
            raise ValidationError("Batch mode needs an input file")
        if not args.export:
            raise ValidationError("Batch mode needs --export FILE")

        ws.ingest(args.path, populate=not args.search)
        if args.search:
            ws.search(args.search, args.column)
        if args.sort:
            column, mode = parse_sort(args.sort)
            if not ws.sort(column, mode):
                raise NotFoundError(f"No column named '{column}'")
        if args.filter:
            ws.set_filter(args.filter.lower())
            ws.store.replace_data_rows([row for _, row in ws.view_rows()])

        path = ws.export(export_kind(args.export), args.export)
    except WorkspaceError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    finally:
        ws.dispose()

    print(path)
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.help:
        print(USAGE)
        return 0

    config = load_config()
    batch = any([args.search, args.sort, args.filter, args.export])

    if batch:
        setup_logging(config["LOG_LEVEL"])
        return run_batch(args, config)

    try:
        ensure_config_dirs()
        log_path = LOG_PATH
    except OSError:
        log_path = None
    setup_logging(config["LOG_LEVEL"], log_path)

    ws = Workspace(config)
    if args.path:
        try:
            ws.ingest(args.path)
        except WorkspaceError as exc:
            print(f"Load failed: {exc.message}", file=sys.stderr)
            return 1
        ws.info_message = f"Loaded {ws.file_name}. :search QUERY to add rows."

    logger.info("starting interactive session")
    curses.wrapper(lambda stdscr: Orchestrator(stdscr, ws, config).run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
