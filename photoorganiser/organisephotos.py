import os
import sys
import shutil
import argparse
import datetime as dt
import logging
from dataclasses import dataclass
from enum import Enum

from photoorganiser import (
    __version__,
    configure_logging,
    iter_files,
    read_capture_timestamps,
    resolve_capture_date,
    RunSummary,
)
from photoorganiser.errors import InvalidPathError

SEPARATOR = "=" * 50

# ------------------------------------------------------------
# types
# ------------------------------------------------------------

@dataclass(frozen=True)
class RunConfig:
    source_dir: str
    dest_dir: str
    dry_run: bool = False
    force: bool = False
    move: bool = False
    include_hidden: bool = False
    verbose: bool = False

    @property
    def operation(self) -> str:
        return "move" if self.move else "copy"


class Action(Enum):
    COPY = "copy"
    MOVE = "move"
    OVERWRITE_COPY = "overwrite-copy"
    OVERWRITE_MOVE = "overwrite-move"
    SKIP = "skip"

    @property
    def overwrite(self) -> bool:
        return self in (Action.OVERWRITE_COPY, Action.OVERWRITE_MOVE)

    @property
    def moves(self) -> bool:
        return self in (Action.MOVE, Action.OVERWRITE_MOVE)


@dataclass(frozen=True)
class FileTask:
    source: str
    capture_date: dt.datetime
    date_source: str
    target_folder: str
    target_path: str


@dataclass(frozen=True)
class TransferResult:
    """Outcome for one file: an action on success, an error message on failure."""
    source: str
    action: Action | None = None
    target: str | None = None
    date_source: str | None = None
    dry_run: bool = False
    folders_created: int = 0
    reason: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ------------------------------------------------------------
# helpers
# ------------------------------------------------------------

def plan_target(dest_dir: str, date: dt.date, basename: str) -> tuple[str, str]:
    """Return (target_folder, target_path) as dest/YYYY/MM/YYYY-MM-DD/basename."""
    year = f"{date.year:04d}"
    month = f"{date.month:02d}"
    day = f"{year}-{month}-{date.day:02d}"
    target_folder = os.path.join(dest_dir, year, month, day)
    return target_folder, os.path.join(target_folder, basename)


def plan_task(source: str, config: RunConfig, *, reader=read_capture_timestamps) -> FileTask:
    label, capture_date = resolve_capture_date(source, reader=reader)
    target_folder, target_path = plan_target(config.dest_dir, capture_date, os.path.basename(source))
    return FileTask(source, capture_date, label, target_folder, target_path)


def decide_action(target_exists: bool, config: RunConfig) -> Action:
    if not target_exists:
        return Action.MOVE if config.move else Action.COPY
    if config.force:
        return Action.OVERWRITE_MOVE if config.move else Action.OVERWRITE_COPY
    return Action.SKIP


def _is_same_file(a: str, b: str) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def _missing_folders(folder: str) -> int:
    """Number of folders makedirs would create for folder, ancestors included."""
    missing = 0
    while folder and not os.path.isdir(folder):
        missing += 1
        parent = os.path.dirname(folder)
        if parent == folder:
            break
        folder = parent
    return missing


def _perform(task: FileTask, action: Action) -> int:
    """Carry out a copy or move. Returns how many folders had to be created."""
    created = _missing_folders(task.target_folder)
    os.makedirs(task.target_folder, exist_ok=True)
    if action.moves:
        shutil.move(task.source, task.target_path)
    else:
        shutil.copy2(task.source, task.target_path)
    return created


# ------------------------------------------------------------
# core logic
# ------------------------------------------------------------

def transfer_one(source: str, config: RunConfig, *, reader=read_capture_timestamps) -> TransferResult:
    """
    Resolve the date of one file, plan its target and copy, move or skip it.
    Never raises: any failure is returned as a TransferResult carrying the error.
    """
    name = os.path.basename(source)
    try:
        task = plan_task(source, config, reader=reader)
        if config.verbose:
            logging.debug(
                "%s: %s -> %s",
                task.date_source,
                task.capture_date.strftime("%Y-%m-%d %H:%M:%S"),
                task.target_folder,
                extra={"target": name},
            )

        target_exists = os.path.exists(task.target_path)
        if target_exists and _is_same_file(source, task.target_path):
            return TransferResult(source, Action.SKIP, task.target_path, task.date_source,
                                  dry_run=config.dry_run, reason="already in place")

        action = decide_action(target_exists, config)
        if action is Action.SKIP:
            return TransferResult(source, action, task.target_path, task.date_source,
                                  dry_run=config.dry_run, reason="already exists")
        if config.dry_run:
            return TransferResult(source, action, task.target_path, task.date_source, dry_run=True)

        created = _perform(task, action)
        return TransferResult(source, action, task.target_path, task.date_source, folders_created=created)
    except Exception as e:
        return TransferResult(source, error=str(e) or type(e).__name__)


def _report_result(result: TransferResult, index: int, total: int) -> None:
    name = os.path.basename(result.source)
    progress = f"[{index}/{total}]"
    extra = {"target": name}

    if not result.ok:
        logging.error("%s Error processing: %s", progress, result.error, extra=extra)
        return

    if result.action is Action.SKIP:
        prefix = "[DRY RUN] Would skip" if result.dry_run else "Skipping"
        logging.warning("%s %s (%s)", progress, prefix, result.reason, extra=extra)
        return

    if result.dry_run:
        logging.info(
            "%s [DRY RUN] Would %s -> %s (overwrite: %s)",
            progress,
            "move" if result.action.moves else "copy",
            result.target,
            "yes" if result.action.overwrite else "no",
            extra=extra,
        )
        return

    verb = "Moved" if result.action.moves else "Copied"
    suffix = " (overwritten)" if result.action.overwrite else ""
    logging.info("%s %s -> %s%s", progress, verb, result.target, suffix, extra=extra)


def _record(result: TransferResult, summary: RunSummary) -> None:
    summary.inc("total")
    if not result.ok:
        summary.inc("errors")
        return
    if result.action is Action.SKIP:
        summary.inc("skipped")
    else:
        summary.inc("processed")
        summary.inc(f"action_{result.action.value}")
    if result.folders_created:
        summary.inc("folders_created", result.folders_created)
    if result.date_source:
        summary.inc(f"source_{result.date_source}")


def process_files(config: RunConfig, summary: RunSummary, *, reader=read_capture_timestamps) -> list[TransferResult]:
    files = list(iter_files(config.source_dir, include_hidden=config.include_hidden))
    logging.info("Found %d files to process", len(files), extra={"target": os.path.basename(config.source_dir)})

    results = []
    for index, path in enumerate(files, start=1):
        result = transfer_one(path, config, reader=reader)
        _report_result(result, index, len(files))
        _record(result, summary)
        results.append(result)
    return results


# ------------------------------------------------------------
# setup & reporting
# ------------------------------------------------------------

def resolve_config(args: argparse.Namespace) -> RunConfig:
    source = os.path.abspath(args.source)
    if not os.path.isdir(source):
        raise InvalidPathError(f"Source directory '{args.source}' does not exist or is not a directory")
    return RunConfig(
        source_dir=source,
        dest_dir=os.path.abspath(args.destination),
        dry_run=bool(args.dry_run),
        force=bool(args.force),
        move=bool(args.move),
        include_hidden=bool(args.include_hidden),
        verbose=bool(args.verbose),
    )


def prepare_destination(config: RunConfig) -> None:
    if config.dry_run:
        return
    try:
        os.makedirs(config.dest_dir, exist_ok=True)
    except OSError as e:
        raise InvalidPathError(f"Cannot create destination directory '{config.dest_dir}': {e}") from e


def _log_header(config: RunConfig) -> None:
    extra = {"target": "SETUP"}
    logging.info("Source: %s", config.source_dir, extra=extra)
    logging.info("Destination: %s", config.dest_dir, extra=extra)
    logging.info("Mode: %s", "DRY RUN" if config.dry_run else "LIVE", extra=extra)
    logging.info("Operation: %s", config.operation.upper(), extra=extra)
    logging.info("Force overwrite: %s", "YES" if config.force else "NO", extra=extra)
    logging.info(SEPARATOR, extra=extra)


def summary_lines(config: RunConfig, s: RunSummary) -> list[str]:
    lines = [
        SEPARATOR,
        f"Files processed: {s['processed']}",
        f"Files skipped: {s['skipped']}",
        f"Errors: {s['errors']}",
        f"Total files: {s['total']}",
    ]

    src_counts = s.prefixed("source_")
    total_src = sum(src_counts.values())
    if total_src:
        parts = [f"{k} {int(round(100.0 * v / total_src))}%" for k, v in sorted(src_counts.items(), key=lambda kv: -kv[1])]
        lines.append("Date sources: " + ", ".join(parts) + ".")

    action_counts = s.prefixed("action_")
    if action_counts:
        parts = [f"{a.value} {action_counts[a.value]}" for a in Action if a.value in action_counts]
        lines.append(("Would " if config.dry_run else "Actions: ") + ", ".join(parts) + ".")

    lines.append(f"Created {s['folders_created']} folder(s) in {s.duration_hms}.")
    lines.append("Organising complete!" + (" (Dry Run Mode)" if config.dry_run else ""))
    return lines


# ------------------------------------------------------------
# CLI
# ------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photoorganiser",
        description=(
            "Organise photos by date into a Lightroom Classic-friendly folder structure "
            "(YYYY/MM/YYYY-MM-DD). Uses EXIF DateTimeOriginal, then CreateDate, "
            "and falls back to the file modification time."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=f"photoorganiser {__version__}")
    parser.add_argument("source", help="Directory containing photos to organise (not searched recursively)")
    parser.add_argument("destination", help="Directory where organised photos will be placed")

    group = parser.add_mutually_exclusive_group()
    group.add_argument("--copy", action="store_true", help="Copy files to destination (default)")
    group.add_argument("--move", action="store_true", help="Move files to destination instead of copying")

    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without changing any files")
    parser.add_argument("--force", action="store_true", help="Overwrite existing files in destination")
    parser.add_argument("--include-hidden", action="store_true", help="Also process hidden (dot) files")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        config = resolve_config(args)
        prepare_destination(config)
    except InvalidPathError as e:
        logging.error("%s", e, extra={"target": "SETUP"})
        parser.print_usage(sys.stdout)
        sys.exit(1)

    s = RunSummary()

    _log_header(config)
    process_files(config, s)
    s.emit_lines(summary_lines(config, s))


if __name__ == "__main__":
    main()
