#!/usr/bin/env python3
"""Load and validate the std package stabilization table."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError

ROOT = Path(__file__).resolve().parents[2]
PACKAGE_DIR = Path(__file__).resolve().parent
# Shipped as package data so installed copies find them beside this module.
DEFAULT_TABLE_PATH = PACKAGE_DIR / "data" / "std_package_table.json"
DEFAULT_SCHEMA_PATH = PACKAGE_DIR / "schemas" / "std-package-table-v1.schema.json"
SCHEMA_ID = "std-package-table-v1"

DATE_FIELDS: tuple[str, ...] = (
    "stabilization_date",
    "stabilization_planned_date",
    "rc_date",
    "rc_planned_date",
)


class MalformedPackageTableError(ValueError):
    """Raised when a package table cannot be loaded or fails validation."""

    def __init__(
        self,
        message: str,
        *,
        package: str | None = None,
        field: str | None = None,
    ) -> None:
        self.package = package
        self.field = field
        self.message = message
        location = ".".join(part for part in (package, field) if part)
        super().__init__(f"{location}: {message}" if location else message)


@dataclass(frozen=True)
class PackageRecord:
    docs: bool
    test: bool
    stabilized: bool
    excluded: bool
    stabilization_issue: int | None = None
    stabilization_date: date | None = None
    stabilization_planned_date: date | None = None
    rc_date: date | None = None
    rc_planned_date: date | None = None
    note: str | None = None
    reviewers: str | None = None


class PackageTable(Mapping[str, PackageRecord]):
    """Immutable name -> record mapping that keeps declaration order."""

    def __init__(self, entries: Mapping[str, PackageRecord] | None = None) -> None:
        self._entries: tuple[tuple[str, PackageRecord], ...] = tuple(
            (entries or {}).items()
        )
        self._index = dict(self._entries)

    def __getitem__(self, name: str) -> PackageRecord:
        return self._index[name]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PackageTable({[name for name, _ in self._entries]!r})"

    def entries(self) -> tuple[tuple[str, PackageRecord], ...]:
        return self._entries


def display_path(path: Path) -> str:
    absolute = path.resolve()
    try:
        return absolute.relative_to(ROOT).as_posix()
    except ValueError:
        return absolute.as_posix()


def read_json(path: Path, *, artifact: str) -> Any:
    if not path.exists():
        raise MalformedPackageTableError(f"{artifact} file does not exist: {display_path(path)}")
    if not path.is_file():
        raise MalformedPackageTableError(f"{artifact} path is not a file: {display_path(path)}")
    try:
        raw_text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedPackageTableError(
            f"{artifact} file is not valid UTF-8: {display_path(path)}"
        ) from exc
    except OSError as exc:
        raise MalformedPackageTableError(
            f"unable to read {artifact} file {display_path(path)}: {exc}"
        ) from exc
    try:
        return json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise MalformedPackageTableError(
            f"{artifact} file is not valid JSON: {display_path(path)} "
            f"(line {exc.lineno} column {exc.colno}: {exc.msg})"
        ) from exc


def load_schema(path: Path = DEFAULT_SCHEMA_PATH) -> dict[str, Any]:
    schema = read_json(path, artifact="schema")
    if not isinstance(schema, dict):
        raise MalformedPackageTableError(f"schema root must be an object: {display_path(path)}")
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as exc:
        raise MalformedPackageTableError(
            f"schema definition is invalid: {display_path(path)}: {exc.message}"
        ) from exc
    return schema


def error_sort_key(error: ValidationError) -> tuple[tuple[str, ...], str]:
    return tuple(str(part) for part in error.absolute_path), str(error.validator)


def offending_key(error: ValidationError) -> str | None:
    """Key named by an object-level error (missing or unexpected property)."""

    if not isinstance(error.instance, dict):
        return None
    if error.validator == "required":
        missing = [key for key in error.validator_value if key not in error.instance]
        return missing[0] if missing else None
    if error.validator == "additionalProperties":
        known = error.schema.get("properties", {})
        extras = [key for key in error.instance if key not in known]
        return extras[0] if extras else None
    return None


def locate_error(error: ValidationError) -> tuple[str | None, str | None]:
    path = list(error.absolute_path)
    if not path:
        return None, offending_key(error)
    if path[0] != "packages":
        return None, str(path[0])

    if len(path) == 1:
        # propertyNames failures report the rejected name as the instance.
        if isinstance(error.instance, str):
            return error.instance, None
        return None, "packages"

    package = str(path[1])
    if len(path) >= 3:
        return package, str(path[2])
    return package, offending_key(error)


def validate_payload(payload: Any, schema: dict[str, Any]) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=error_sort_key)
    if not errors:
        return
    first = errors[0]
    package, field = locate_error(first)
    raise MalformedPackageTableError(first.message, package=package, field=field)


def parse_date(raw_value: str | None, *, package: str, field: str) -> date | None:
    if raw_value is None:
        return None
    try:
        return date.fromisoformat(raw_value)
    except ValueError as exc:
        raise MalformedPackageTableError(
            f"{raw_value!r} is not a valid calendar date",
            package=package,
            field=field,
        ) from exc


def parse_issue(raw_value: Any, *, package: str) -> int | None:
    # JSON Schema's "integer" also admits integral floats such as 4717.0.
    if raw_value is None or type(raw_value) is int:
        return raw_value
    raise MalformedPackageTableError(
        f"{raw_value!r} is not an integer issue number",
        package=package,
        field="stabilization_issue",
    )


def record_from_dict(package: str, raw: dict[str, Any]) -> PackageRecord:
    dates = {
        field: parse_date(raw.get(field), package=package, field=field)
        for field in DATE_FIELDS
    }
    return PackageRecord(
        docs=raw["docs"],
        test=raw["test"],
        stabilized=raw["stabilized"],
        excluded=raw["excluded"],
        stabilization_issue=parse_issue(raw.get("stabilization_issue"), package=package),
        note=raw.get("note"),
        reviewers=raw.get("reviewers"),
        **dates,
    )


def table_from_payload(payload: Any, schema: dict[str, Any]) -> PackageTable:
    validate_payload(payload, schema)
    packages = payload["packages"]
    return PackageTable(
        {name: record_from_dict(name, raw) for name, raw in packages.items()}
    )


def load_package_table(
    path: Path = DEFAULT_TABLE_PATH,
    *,
    schema_path: Path = DEFAULT_SCHEMA_PATH,
) -> PackageTable:
    """Read ``path`` and return the validated table in declaration order.

    Every problem surfaces as :class:`MalformedPackageTableError`; nothing
    is returned for a partially valid table.
    """

    schema = load_schema(schema_path)
    payload = read_json(path, artifact="package table")
    return table_from_payload(payload, schema)
