#!/usr/bin/env python3
"""Priority decision tables, ordering, and partitioning for package records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Sequence

from lib.package_table import PackageRecord, PackageTable

EPOCH = date(1970, 1, 1)
MILLIS_PER_DAY = 86_400_000
# Keeps offsets below 1.0 for dates before 2027-01-15, so tiers never overlap.
DATE_OFFSET_DIVISOR = 1_800_000_000_000

PRIORITY_SCHEMES: tuple[str, ...] = ("dated", "tiered")
DEFAULT_PRIORITY_SCHEME = "dated"
EXCLUDED_ORDERS: tuple[str, ...] = ("alphabetical", "priority")
DEFAULT_EXCLUDED_ORDER = "alphabetical"

Entry = tuple[str, PackageRecord]


@dataclass(frozen=True)
class PriorityRule:
    name: str
    predicate: Callable[[PackageRecord], bool]
    score: Callable[[PackageRecord], float]


@dataclass(frozen=True)
class Partition:
    included: tuple[Entry, ...]
    excluded: tuple[Entry, ...]


def epoch_millis(value: date) -> int:
    """Milliseconds since the Unix epoch at UTC midnight of ``value``."""

    return (value - EPOCH).days * MILLIS_PER_DAY


def date_offset(value: date | None) -> float:
    if value is None:
        return 0.0
    return epoch_millis(value) / DATE_OFFSET_DIVISOR


def constant(score: float) -> Callable[[PackageRecord], float]:
    return lambda record: score


DATED_RULES: tuple[PriorityRule, ...] = (
    PriorityRule(
        "stabilized",
        lambda record: record.stabilized,
        lambda record: -10 + date_offset(record.stabilization_date),
    ),
    PriorityRule(
        "stabilization-date",
        lambda record: record.stabilization_date is not None,
        lambda record: -9 + date_offset(record.stabilization_date),
    ),
    PriorityRule(
        "rc-planned-date",
        lambda record: record.rc_planned_date is not None,
        lambda record: -8 + date_offset(record.rc_planned_date),
    ),
    PriorityRule(
        "stabilization-issue",
        lambda record: record.stabilization_issue is not None,
        constant(-7),
    ),
    PriorityRule("test-and-docs", lambda record: record.test and record.docs, constant(-6)),
    PriorityRule("test", lambda record: record.test, constant(-5)),
    PriorityRule("docs", lambda record: record.docs, constant(-4)),
    PriorityRule("excluded", lambda record: record.excluded, constant(1)),
    PriorityRule("untouched", lambda record: True, constant(0)),
)

# Integer tiers used before dates refined the ordering.
TIERED_RULES: tuple[PriorityRule, ...] = (
    PriorityRule("stabilized", lambda record: record.stabilized, constant(-10)),
    PriorityRule(
        "stabilization-date",
        lambda record: record.stabilization_date is not None,
        constant(-9),
    ),
    PriorityRule(
        "stabilization-issue",
        lambda record: record.stabilization_issue is not None,
        constant(-8),
    ),
    PriorityRule("test-and-docs", lambda record: record.test and record.docs, constant(-7)),
    PriorityRule("test", lambda record: record.test, constant(-6)),
    PriorityRule("docs", lambda record: record.docs, constant(-5)),
    PriorityRule("excluded", lambda record: record.excluded, constant(1)),
    PriorityRule("untouched", lambda record: True, constant(0)),
)

RULES_BY_SCHEME: dict[str, tuple[PriorityRule, ...]] = {
    "dated": DATED_RULES,
    "tiered": TIERED_RULES,
}


def rules_for(scheme: str) -> tuple[PriorityRule, ...]:
    try:
        return RULES_BY_SCHEME[scheme]
    except KeyError:
        raise ValueError(
            f"unknown priority scheme {scheme!r}; expected one of {', '.join(PRIORITY_SCHEMES)}"
        ) from None


def matching_rule(record: PackageRecord, scheme: str = DEFAULT_PRIORITY_SCHEME) -> PriorityRule:
    for rule in rules_for(scheme):
        if rule.predicate(record):
            return rule
    raise ValueError(f"priority scheme {scheme!r} has no rule matching the record")


def classify(record: PackageRecord, scheme: str = DEFAULT_PRIORITY_SCHEME) -> str:
    return matching_rule(record, scheme).name


def priority(record: PackageRecord, scheme: str = DEFAULT_PRIORITY_SCHEME) -> float:
    """Sort key for ``record``; lower values are listed first."""

    return float(matching_rule(record, scheme).score(record))


def sort_entries(
    table: PackageTable,
    *,
    scheme: str = DEFAULT_PRIORITY_SCHEME,
) -> list[Entry]:
    # sorted() is stable: equal priorities keep declaration order.
    return sorted(table.entries(), key=lambda entry: priority(entry[1], scheme))


def partition(entries: Sequence[Entry]) -> Partition:
    included = tuple(entry for entry in entries if not entry[1].excluded)
    excluded = tuple(entry for entry in entries if entry[1].excluded)
    return Partition(included=included, excluded=excluded)


def order_excluded(
    entries: Sequence[Entry],
    order: str = DEFAULT_EXCLUDED_ORDER,
) -> tuple[Entry, ...]:
    if order == "priority":
        return tuple(entries)
    if order == "alphabetical":
        return tuple(sorted(entries, key=lambda entry: entry[0]))
    raise ValueError(
        f"unknown excluded order {order!r}; expected one of {', '.join(EXCLUDED_ORDERS)}"
    )


def build_partition(
    table: PackageTable,
    *,
    scheme: str = DEFAULT_PRIORITY_SCHEME,
    excluded_order: str = DEFAULT_EXCLUDED_ORDER,
) -> Partition:
    split = partition(sort_entries(table, scheme=scheme))
    return Partition(
        included=split.included,
        excluded=order_excluded(split.excluded, excluded_order),
    )
