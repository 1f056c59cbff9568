from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))

from lib import stabilization_priority
from lib.package_table import PackageRecord, PackageTable

DATED_HEAD = stabilization_priority.DATED_RULES[:1]


def record(**overrides: object) -> PackageRecord:
    fields: dict[str, object] = {
        "docs": False,
        "test": False,
        "stabilized": False,
        "excluded": False,
    }
    fields.update(overrides)
    return PackageRecord(**fields)  # type: ignore[arg-type]


def names(entries: object) -> list[str]:
    return [name for name, _ in entries]  # type: ignore[attr-defined]


@pytest.mark.parametrize(
    ("fields", "rule", "score"),
    [
        ({"stabilized": True}, "stabilized", -10.0),
        ({"stabilization_issue": 1}, "stabilization-issue", -7.0),
        ({"test": True, "docs": True}, "test-and-docs", -6.0),
        ({"test": True}, "test", -5.0),
        ({"docs": True}, "docs", -4.0),
        ({"excluded": True}, "excluded", 1.0),
        ({}, "untouched", 0.0),
    ],
)
def test_dated_scheme_undated_tiers(fields: dict[str, object], rule: str, score: float) -> None:
    subject = record(**fields)

    assert stabilization_priority.classify(subject) == rule
    assert stabilization_priority.priority(subject) == score


def test_dated_scheme_applies_date_offsets() -> None:
    june_7 = date(2024, 6, 7)
    offset = stabilization_priority.epoch_millis(june_7) / 1_800_000_000_000

    assert stabilization_priority.epoch_millis(june_7) == 1_717_718_400_000
    assert stabilization_priority.priority(
        record(stabilized=True, stabilization_date=june_7)
    ) == pytest.approx(-10 + offset)
    assert stabilization_priority.priority(
        record(stabilization_date=june_7)
    ) == pytest.approx(-9 + offset)
    assert stabilization_priority.priority(
        record(rc_planned_date=june_7)
    ) == pytest.approx(-8 + offset)


def test_cascade_first_matching_rule_wins() -> None:
    everything = record(
        docs=True,
        test=True,
        stabilized=True,
        excluded=True,
        stabilization_issue=10,
        stabilization_date=date(2024, 6, 7),
        rc_planned_date=date(2024, 5, 1),
    )
    assert stabilization_priority.classify(everything) == "stabilized"

    # A docs-carrying excluded package lands in the docs tier, not the exclusion bucket.
    assert stabilization_priority.classify(record(docs=True, excluded=True)) == "docs"
    assert stabilization_priority.classify(
        record(stabilization_issue=4, rc_planned_date=date(2024, 5, 1))
    ) == "rc-planned-date"


def test_tiers_never_overlap_for_dated_records() -> None:
    late = date(2026, 12, 31)
    early = date(2020, 1, 1)

    assert stabilization_priority.priority(
        record(stabilized=True, stabilization_date=late)
    ) < stabilization_priority.priority(record(stabilization_date=early))
    assert stabilization_priority.priority(
        record(stabilization_date=late)
    ) < stabilization_priority.priority(record(rc_planned_date=early))
    assert stabilization_priority.priority(
        record(rc_planned_date=late)
    ) < stabilization_priority.priority(record(stabilization_issue=1))


@pytest.mark.parametrize(
    ("fields", "score"),
    [
        ({"stabilized": True, "stabilization_date": date(2024, 6, 7)}, -10),
        ({"stabilization_date": date(2024, 6, 7)}, -9),
        ({"rc_planned_date": date(2024, 6, 7)}, 0),
        ({"stabilization_issue": 7}, -8),
        ({"test": True, "docs": True}, -7),
        ({"test": True}, -6),
        ({"docs": True}, -5),
        ({"excluded": True}, 1),
        ({}, 0),
    ],
)
def test_tiered_scheme_uses_integer_tiers(fields: dict[str, object], score: int) -> None:
    assert stabilization_priority.priority(record(**fields), "tiered") == score


def test_unknown_scheme_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown priority scheme"):
        stabilization_priority.priority(record(), "fancy")


def test_every_scheme_ends_with_catch_all() -> None:
    for scheme in stabilization_priority.PRIORITY_SCHEMES:
        rules = stabilization_priority.rules_for(scheme)
        assert rules[-1].predicate(record())


def test_earlier_stabilization_sorts_first_within_stabilized_tier() -> None:
    table = PackageTable(
        {
            "later": record(stabilized=True, stabilization_date=date(2024, 7, 1)),
            "earlier": record(stabilized=True, stabilization_date=date(2024, 6, 7)),
        }
    )

    assert names(stabilization_priority.sort_entries(table)) == ["earlier", "later"]


def test_docs_only_sorts_after_test_only() -> None:
    table = PackageTable(
        {
            "docs-only": record(docs=True),
            "test-only": record(test=True),
        }
    )

    assert names(stabilization_priority.sort_entries(table)) == ["test-only", "docs-only"]


def test_equal_priorities_keep_declaration_order() -> None:
    table = PackageTable(
        {
            "zeta": record(docs=True),
            "alpha": record(docs=True),
            "mu": record(docs=True),
            "first": record(test=True),
        }
    )

    assert names(stabilization_priority.sort_entries(table)) == ["first", "zeta", "alpha", "mu"]
    assert names(stabilization_priority.sort_entries(table, scheme="tiered")) == [
        "first",
        "zeta",
        "alpha",
        "mu",
    ]


def test_partition_is_exhaustive_and_exclusive() -> None:
    table = PackageTable(
        {
            "archive": record(excluded=True, note="Migrating."),
            "cli": record(docs=True),
            "datetime": record(test=True, excluded=True),
            "fs": record(),
        }
    )
    entries = stabilization_priority.sort_entries(table)

    split = stabilization_priority.partition(entries)

    included = set(names(split.included))
    excluded = set(names(split.excluded))
    assert included.isdisjoint(excluded)
    assert included | excluded == set(table)
    assert all(not item.excluded for _, item in split.included)
    assert all(item.excluded for _, item in split.excluded)
    assert names(split.included) == ["cli", "fs"]
    assert names(split.excluded) == ["datetime", "archive"]


def test_excluded_order_alphabetical_and_priority() -> None:
    table = PackageTable(
        {
            "webgpu": record(docs=True, excluded=True),
            "log": record(excluded=True),
            "archive": record(excluded=True),
        }
    )

    alphabetical = stabilization_priority.build_partition(table)
    by_priority = stabilization_priority.build_partition(table, excluded_order="priority")

    assert names(alphabetical.excluded) == ["archive", "log", "webgpu"]
    assert names(by_priority.excluded) == ["webgpu", "log", "archive"]
    assert alphabetical.included == ()


def test_unknown_excluded_order_is_rejected() -> None:
    with pytest.raises(ValueError, match="unknown excluded order"):
        stabilization_priority.order_excluded((), "random")


def test_scheme_without_matching_rule_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(stabilization_priority.RULES_BY_SCHEME, "stabilized-only", DATED_HEAD)

    with pytest.raises(ValueError, match="has no rule matching the record"):
        stabilization_priority.priority(record(docs=True), "stabilized-only")
