from __future__ import annotations

from datetime import date

import pytest

from app.core.masking.mapping import MappingTable, build_mapping, first_token, parse_calendar_date
from app.core.placeholders import Placeholder
from app.models.entities import SubjectRecord


def _full_record() -> SubjectRecord:
    return SubjectRecord(
        full_name="John Smith",
        date_of_birth="2015-04-02",
        subject_id="S-12345",
        institution="Lincoln Elementary",
        grade_level="3",
        guardian_name="Mary Smith",
        guardian_contact="mary@example.com",
        address="12 Oak Lane",
    )


def test_full_record_produces_entries_in_field_order() -> None:
    table = build_mapping(_full_record())

    assert list(table.items()) == [
        ("John Smith", Placeholder.STUDENT_NAME),
        ("John", Placeholder.STUDENT_FIRST),
        ("john smith", Placeholder.STUDENT_NAME),
        ("JOHN SMITH", Placeholder.STUDENT_NAME),
        ("john", Placeholder.STUDENT_FIRST),
        ("JOHN", Placeholder.STUDENT_FIRST),
        ("2015-04-02", Placeholder.DATE_OF_BIRTH),
        ("4/2/2015", Placeholder.DATE_OF_BIRTH),
        ("S-12345", Placeholder.STUDENT_ID),
        ("Lincoln Elementary", Placeholder.SCHOOL_NAME),
        ("lincoln elementary", Placeholder.SCHOOL_NAME),
        ("LINCOLN ELEMENTARY", Placeholder.SCHOOL_NAME),
        ("3", Placeholder.GRADE_LEVEL),
        ("Mary Smith", Placeholder.PARENT_NAME),
        ("mary smith", Placeholder.PARENT_NAME),
        ("MARY SMITH", Placeholder.PARENT_NAME),
        ("12 Oak Lane", Placeholder.ADDRESS),
    ]


def test_guardian_contact_is_never_mapped() -> None:
    table = build_mapping(_full_record())

    assert "mary@example.com" not in table


def test_name_only_record_yields_smaller_table() -> None:
    table = build_mapping(SubjectRecord(full_name="Ana Lopez"))

    assert set(table.values()) == {Placeholder.STUDENT_NAME, Placeholder.STUDENT_FIRST}
    assert len(table) == 6


def test_single_token_name_has_no_first_name_entries() -> None:
    table = build_mapping(SubjectRecord(full_name="Madonna"))

    assert dict(table) == {
        "Madonna": Placeholder.STUDENT_NAME,
        "madonna": Placeholder.STUDENT_NAME,
        "MADONNA": Placeholder.STUDENT_NAME,
    }


def test_first_token_splits_on_any_whitespace() -> None:
    assert first_token("Jean\tLuc Picard") == "Jean"
    assert first_token("Prince") == "Prince"


def test_empty_and_blank_fields_contribute_nothing() -> None:
    table = build_mapping(
        SubjectRecord(full_name="", date_of_birth="   ", subject_id=None, institution="  ", address="")
    )

    assert len(table) == 0
    assert isinstance(table, MappingTable)


def test_identifier_grade_and_address_have_no_case_variants() -> None:
    table = build_mapping(SubjectRecord(subject_id="ab-12", grade_level="Kindergarten", address="5 Elm St"))

    assert list(table) == ["ab-12", "Kindergarten", "5 Elm St"]


def test_date_object_maps_iso_and_locale_forms() -> None:
    table = build_mapping(SubjectRecord(date_of_birth=date(2015, 4, 2)))

    assert dict(table) == {
        "2015-04-02": Placeholder.DATE_OF_BIRTH,
        "4/2/2015": Placeholder.DATE_OF_BIRTH,
    }


def test_non_iso_date_string_keeps_raw_and_adds_renderings() -> None:
    table = build_mapping(SubjectRecord(date_of_birth="April 2, 2015"))

    assert list(table) == ["April 2, 2015", "4/2/2015", "2015-04-02"]
    assert set(table.values()) == {Placeholder.DATE_OF_BIRTH}


@pytest.mark.parametrize("raw", ["unknown", "yesterday", "3 days ago"])
def test_unparseable_date_maps_only_raw_value(raw: str) -> None:
    table = build_mapping(SubjectRecord(date_of_birth=raw))

    assert dict(table) == {raw: Placeholder.DATE_OF_BIRTH}


def test_locale_date_format_is_configurable() -> None:
    table = build_mapping(
        SubjectRecord(date_of_birth="2015-04-02"),
        locale_date_format="{day:02d}/{month:02d}/{year}",
    )

    assert "02/04/2015" in table


def test_parse_calendar_date_handles_iso_and_garbage() -> None:
    assert parse_calendar_date("2015-04-02") == date(2015, 4, 2)
    assert parse_calendar_date("not a date at all") is None


def test_collision_last_field_wins_and_keeps_position() -> None:
    table = build_mapping(SubjectRecord(full_name="Ana Lopez", institution="Taylor", guardian_name="Taylor"))

    assert table["Taylor"] == Placeholder.PARENT_NAME
    assert table["taylor"] == Placeholder.PARENT_NAME
    assert Placeholder.SCHOOL_NAME not in set(table.values())
    assert list(table).index("Taylor") == 6


def test_table_is_read_only() -> None:
    table = build_mapping(SubjectRecord(full_name="John Smith"))

    assert not hasattr(table, "__setitem__")
    assert not hasattr(table, "pop")
