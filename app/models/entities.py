from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(slots=True, frozen=True)
class SubjectRecord:
    """Identifying attributes for one protected subject.

    Every field is optional; absent or blank fields simply contribute no
    mapping entries.
    """

    full_name: str | None = None
    date_of_birth: date | str | None = None
    subject_id: str | None = None
    institution: str | None = None
    grade_level: str | None = None
    guardian_name: str | None = None
    guardian_contact: str | None = None
    address: str | None = None


@dataclass(slots=True, frozen=True)
class LeakReport:
    clean: bool
    offending_values: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MaskingResult:
    text: str
    leak: LeakReport


@dataclass(slots=True)
class UnmaskingResult:
    text: str
    replaced: int
