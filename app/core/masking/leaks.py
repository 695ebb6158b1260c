from __future__ import annotations

from app.core.masking.mapping import MappingTable
from app.models.entities import LeakReport

# Values this short (initials, single-digit grades) are still masked but are
# too noisy to report as leaks.
MIN_LEAK_LENGTH = 2


def validate_no_leak(text: str, table: MappingTable) -> LeakReport:
    """Re-scan text for any mapped real value that survived masking.

    Detection only: the text is never modified and the caller decides
    whether a finding is fatal.
    """
    text_lower = text.lower()
    offending = [
        real_value
        for real_value in table
        if len(real_value) > MIN_LEAK_LENGTH and real_value.lower() in text_lower
    ]
    return LeakReport(clean=not offending, offending_values=offending)
