from __future__ import annotations

import regex as re

from app.core.masking.mapping import MappingTable
from app.core.placeholders import Placeholder
from app.models.entities import UnmaskingResult


def reverse_table(table: MappingTable) -> dict[Placeholder, str]:
    """Token -> real value, keeping the first value inserted for each token."""
    reverse: dict[Placeholder, str] = {}
    for real_value, placeholder in table.items():
        reverse.setdefault(placeholder, real_value)
    return reverse


def mask(text: str, table: MappingTable) -> str:
    if not text or not table:
        return text

    masked = text
    # Longest first so "John Smith" is replaced before "John" can split it.
    for real_value in sorted(table, key=len, reverse=True):
        if not real_value:
            continue
        placeholder = table[real_value].value
        pattern = re.compile(re.escape(real_value), re.IGNORECASE)
        masked = pattern.sub(lambda _match, token=placeholder: token, masked)
    return masked


def unmask_with_count(text: str, table: MappingTable) -> UnmaskingResult:
    if not text or not table:
        return UnmaskingResult(text=text, replaced=0)

    restored = text
    replaced = 0
    reverse = reverse_table(table)
    # Longest token first, one pass per token; later passes also see text restored by earlier ones.
    for placeholder, original in sorted(reverse.items(), key=lambda item: len(item[0].value), reverse=True):
        token = placeholder.value
        count = restored.count(token)
        if count:
            restored = restored.replace(token, original)
            replaced += count
    return UnmaskingResult(text=restored, replaced=replaced)


def unmask(text: str, table: MappingTable) -> str:
    return unmask_with_count(text, table).text
