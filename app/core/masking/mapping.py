from __future__ import annotations

import logging
import regex as re
from collections.abc import Iterator, Mapping
from datetime import date, datetime

import dateparser

from app.core.placeholders import Placeholder
from app.models.entities import SubjectRecord

logger = logging.getLogger(__name__)

# US short-date form, e.g. 4/2/2015.
DEFAULT_LOCALE_DATE_FORMAT = "{month}/{day}/{year}"

_FIRST_WHITESPACE = re.compile(r"\s")

_DATEPARSER_SETTINGS = {
    "STRICT_PARSING": True,
    "PREFER_DAY_OF_MONTH": "first",
    "RETURN_AS_TIMEZONE_AWARE": False,
    # No relative parser: "yesterday" must not become a concrete date.
    "PARSERS": ["timestamp", "custom-formats", "absolute-time"],
}


class MappingTable(Mapping[str, Placeholder]):
    """Read-only real value -> placeholder association.

    Iteration follows insertion order. Unmasking derives its reverse table
    from that order, so it is part of the contract.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Placeholder] | None = None) -> None:
        self._entries: dict[str, Placeholder] = dict(entries or {})

    def __getitem__(self, key: str) -> Placeholder:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MappingTable(size={len(self._entries)})"


class MappingTableBuilder:
    def __init__(self) -> None:
        self._entries: dict[str, Placeholder] = {}

    def assign(self, value: str, placeholder: Placeholder) -> None:
        # Last write wins; a re-assigned key keeps its first position.
        if value:
            self._entries[value] = placeholder

    def assign_case_variants(self, value: str, placeholder: Placeholder) -> None:
        self.assign(value, placeholder)
        self.assign(value.lower(), placeholder)
        self.assign(value.upper(), placeholder)

    def build(self) -> MappingTable:
        return MappingTable(self._entries)


def _present(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def first_token(full_name: str) -> str:
    return _FIRST_WHITESPACE.split(full_name, maxsplit=1)[0]


def parse_calendar_date(raw: date | str) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    candidate = raw.strip()
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        pass

    try:
        parsed = dateparser.parse(candidate, settings=_DATEPARSER_SETTINGS)
    except Exception as exc:
        logger.debug("date of birth parse failed: %s", exc)
        return None
    if parsed is None:
        logger.debug("date of birth is not a calendar date; mapping raw value only")
        return None
    return parsed.date()


def format_locale_date(value: date, template: str = DEFAULT_LOCALE_DATE_FORMAT) -> str:
    return template.format(year=value.year, month=value.month, day=value.day)


def _raw_date_text(raw: date | str) -> str:
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    return raw


def build_mapping(
    record: SubjectRecord,
    *,
    locale_date_format: str = DEFAULT_LOCALE_DATE_FORMAT,
) -> MappingTable:
    """Derive the substitution table for one subject.

    Field order is fixed: name, date of birth, identifier, institution,
    grade, guardian, address. When two fields produce the same literal the
    later field owns the key.
    """
    builder = MappingTableBuilder()

    full_name = _present(record.full_name)
    if full_name:
        first = first_token(full_name)
        builder.assign(full_name, Placeholder.STUDENT_NAME)
        has_first = bool(first) and first != full_name
        if has_first:
            builder.assign(first, Placeholder.STUDENT_FIRST)
        builder.assign(full_name.lower(), Placeholder.STUDENT_NAME)
        builder.assign(full_name.upper(), Placeholder.STUDENT_NAME)
        if has_first:
            builder.assign(first.lower(), Placeholder.STUDENT_FIRST)
            builder.assign(first.upper(), Placeholder.STUDENT_FIRST)

    dob = record.date_of_birth
    if isinstance(dob, str):
        dob = _present(dob)
    if dob:
        builder.assign(_raw_date_text(dob), Placeholder.DATE_OF_BIRTH)
        parsed = parse_calendar_date(dob)
        if parsed is not None:
            builder.assign(format_locale_date(parsed, locale_date_format), Placeholder.DATE_OF_BIRTH)
            builder.assign(parsed.isoformat(), Placeholder.DATE_OF_BIRTH)

    subject_id = _present(record.subject_id)
    if subject_id:
        builder.assign(subject_id, Placeholder.STUDENT_ID)

    institution = _present(record.institution)
    if institution:
        builder.assign_case_variants(institution, Placeholder.SCHOOL_NAME)

    grade_level = _present(record.grade_level)
    if grade_level:
        builder.assign(grade_level, Placeholder.GRADE_LEVEL)

    guardian_name = _present(record.guardian_name)
    if guardian_name:
        builder.assign_case_variants(guardian_name, Placeholder.PARENT_NAME)

    address = _present(record.address)
    if address:
        builder.assign(address, Placeholder.ADDRESS)

    return builder.build()
