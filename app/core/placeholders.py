from __future__ import annotations

from enum import Enum


class Placeholder(str, Enum):
    """Closed vocabulary of tokens the generation side is allowed to see."""

    STUDENT_NAME = "[STUDENT_NAME]"
    STUDENT_FIRST = "[STUDENT_FIRST]"
    DATE_OF_BIRTH = "[DATE_OF_BIRTH]"
    STUDENT_ID = "[STUDENT_ID]"
    SCHOOL_NAME = "[SCHOOL_NAME]"
    GRADE_LEVEL = "[GRADE_LEVEL]"
    PARENT_NAME = "[PARENT_NAME]"
    ADDRESS = "[ADDRESS]"
    # Pronouns are emitted by the generator directly; no mapping is ever built for them.
    HE_SHE = "[HE/SHE]"
    HIM_HER = "[HIM/HER]"
    HIS_HER = "[HIS/HER]"

    def __str__(self) -> str:
        return self.value


DATA_PLACEHOLDERS: tuple[Placeholder, ...] = (
    Placeholder.STUDENT_NAME,
    Placeholder.STUDENT_FIRST,
    Placeholder.DATE_OF_BIRTH,
    Placeholder.STUDENT_ID,
    Placeholder.SCHOOL_NAME,
    Placeholder.GRADE_LEVEL,
    Placeholder.PARENT_NAME,
    Placeholder.ADDRESS,
)

PRONOUN_PLACEHOLDERS: tuple[Placeholder, ...] = (
    Placeholder.HE_SHE,
    Placeholder.HIM_HER,
    Placeholder.HIS_HER,
)
