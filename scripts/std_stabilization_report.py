#!/usr/bin/env python3
"""Render the std package stabilization roadmap as Markdown."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Sequence

ROOT = Path(__file__).resolve().parents[1]
SCRIPTS_DIR = Path(__file__).resolve().parent

if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from lib.package_table import (
    DEFAULT_TABLE_PATH,
    MalformedPackageTableError,
    PackageTable,
    display_path,
    load_package_table,
)
from lib.stabilization_priority import (
    DEFAULT_EXCLUDED_ORDER,
    DEFAULT_PRIORITY_SCHEME,
    EXCLUDED_ORDERS,
    PRIORITY_SCHEMES,
    Entry,
    build_partition,
)

MODES: tuple[str, ...] = ("roadmap", "blog", "words")
DEFAULT_MODE = "roadmap"

CHECK_GLYPH = "✅"
PACKAGE_URL_TEMPLATE = "https://jsr.io/@std/{package}"
ISSUE_URL_TEMPLATE = "https://github.com/denoland/deno_std/issues/{issue}"
MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

ROADMAP_HEADERS: tuple[str, ...] = (
    "Package",
    "Docs",
    "Test",
    "RC",
    "1.0.0",
    "The issue",
    "Stabilization Date",
)
RC_PLANNED_HEADER = "RC Planned Date"
EXCLUDED_HEADERS: tuple[str, ...] = ("Package", "Note")
BLOG_HEADERS: tuple[str, ...] = (
    "Package",
    "Stabilized",
    "Stabilization Date",
    "RC Planned Date",
    "Stabilization Planned Date",
)


@dataclass(frozen=True)
class ReportOptions:
    mode: str = DEFAULT_MODE
    priority_scheme: str = DEFAULT_PRIORITY_SCHEME
    excluded_order: str = DEFAULT_EXCLUDED_ORDER
    rc_planned_column: bool = False
    linked_names: bool = True


def write_stdout(value: str) -> None:
    buffer = getattr(sys.stdout, "buffer", None)
    if buffer is not None:
        buffer.write(value.encode("utf-8"))
        return
    sys.stdout.write(value)


def resolve_repo_path(raw_path: Path) -> Path:
    if raw_path.is_absolute():
        return raw_path
    return ROOT / raw_path


def format_check(value: bool) -> str:
    return CHECK_GLYPH if value else ""


def format_date(value: date | None) -> str:
    """English medium date, e.g. ``Jun 7, 2024``; empty when absent.

    Built from a fixed month table so output never depends on the process
    locale.
    """

    if value is None:
        return ""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.day}, {value.year}"


def format_issue(issue: int | None) -> str:
    if issue is None:
        return ""
    return f"[#{issue}]({ISSUE_URL_TEMPLATE.format(issue=issue)})"


def format_package(name: str, *, linked: bool = True) -> str:
    if not linked:
        return name
    return f"[{name}]({PACKAGE_URL_TEMPLATE.format(package=name)})"


def normalize_space(value: str) -> str:
    return " ".join(value.strip().split())


def escape_markdown_cell(value: str) -> str:
    # A table row must stay on one line.
    return normalize_space(value).replace("|", r"\|")


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[str]:
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join("-" * len(header) for header in headers) + " |",
    ]
    for row in rows:
        lines.append("| " + " | ".join(row) + " |")
    return lines


def roadmap_row(entry: Entry, options: ReportOptions) -> list[str]:
    name, record = entry
    row = [
        format_package(name, linked=options.linked_names),
        format_check(record.docs),
        format_check(record.test),
        format_check(record.stabilization_date is not None),
        format_check(record.stabilized),
        format_issue(record.stabilization_issue),
        format_date(record.stabilization_date),
    ]
    if options.rc_planned_column:
        row.append(format_date(record.rc_planned_date))
    return row


def render_roadmap(
    included: Sequence[Entry],
    excluded: Sequence[Entry],
    options: ReportOptions,
) -> str:
    headers = list(ROADMAP_HEADERS)
    if options.rc_planned_column:
        headers.append(RC_PLANNED_HEADER)
    lines = render_table(headers, [roadmap_row(entry, options) for entry in included])

    lines.extend(["", "### Excluded Packages", ""])
    if not excluded:
        lines.append("_No excluded packages._")
    else:
        lines.extend(
            render_table(
                EXCLUDED_HEADERS,
                [
                    [
                        format_package(name, linked=options.linked_names),
                        escape_markdown_cell(record.note or ""),
                    ]
                    for name, record in excluded
                ],
            )
        )
    return "\n".join(lines) + "\n"


def render_blog(included: Sequence[Entry], options: ReportOptions) -> str:
    rows = [
        [
            format_package(name, linked=options.linked_names),
            format_check(record.stabilized),
            format_date(record.stabilization_date),
            format_date(record.rc_planned_date),
            format_date(record.stabilization_planned_date),
        ]
        for name, record in included
    ]
    return "\n".join(render_table(BLOG_HEADERS, rows)) + "\n"


def render_words(included: Sequence[Entry]) -> str:
    return "".join(f"{name}\n" for name, _ in included)


def build_report(table: PackageTable, options: ReportOptions) -> str:
    if options.mode not in MODES:
        raise ValueError(f"unknown mode {options.mode!r}; expected one of {', '.join(MODES)}")
    split = build_partition(
        table,
        scheme=options.priority_scheme,
        excluded_order=options.excluded_order,
    )
    if options.mode == "blog":
        return render_blog(split.included, options)
    if options.mode == "words":
        return render_words(split.included)
    return render_roadmap(split.included, split.excluded, options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="std_stabilization_report.py",
        description=(
            "Render the std package stabilization table as Markdown, ordered by "
            "stabilization priority."
        ),
    )
    parser.add_argument(
        "--table",
        type=Path,
        default=DEFAULT_TABLE_PATH,
        help=f"Package table JSON (default: {display_path(DEFAULT_TABLE_PATH)}).",
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--mode",
        choices=MODES,
        default=None,
        help="Report view: roadmap (default), blog, or words.",
    )
    mode_group.add_argument(
        "--blog",
        action="store_const",
        const="blog",
        dest="mode",
        help="Shorthand for --mode blog.",
    )
    mode_group.add_argument(
        "--words",
        action="store_const",
        const="words",
        dest="mode",
        help="Shorthand for --mode words.",
    )
    parser.add_argument(
        "--priority-scheme",
        choices=PRIORITY_SCHEMES,
        default=DEFAULT_PRIORITY_SCHEME,
        help="dated (default) refines tiers by date; tiered uses integer tiers only.",
    )
    parser.add_argument(
        "--excluded-order",
        choices=EXCLUDED_ORDERS,
        default=DEFAULT_EXCLUDED_ORDER,
        help="Order of the excluded packages table (default: alphabetical).",
    )
    parser.add_argument(
        "--rc-planned-column",
        action="store_true",
        help="Add an RC Planned Date column to the roadmap table.",
    )
    parser.add_argument(
        "--plain-names",
        action="store_true",
        help="Render package names without registry links.",
    )
    return parser


def options_from_args(args: argparse.Namespace) -> ReportOptions:
    return ReportOptions(
        mode=args.mode or DEFAULT_MODE,
        priority_scheme=args.priority_scheme,
        excluded_order=args.excluded_order,
        rc_planned_column=args.rc_planned_column,
        linked_names=not args.plain_names,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    options = options_from_args(args)

    try:
        table = load_package_table(resolve_repo_path(args.table))
    except MalformedPackageTableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    write_stdout(build_report(table, options))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
