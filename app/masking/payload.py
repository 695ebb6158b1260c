from __future__ import annotations

from typing import Any, Literal

from app.core.masking.mapping import MappingTable
from app.core.masking.reversible import mask, unmask

Direction = Literal["mask", "unmask"]

DIRECTIONS: tuple[Direction, ...] = ("mask", "unmask")


def _transform_text(text: str, table: MappingTable, direction: Direction) -> str:
    if direction == "mask":
        return mask(text, table)
    if direction == "unmask":
        return unmask(text, table)
    raise ValueError(f"unsupported direction: {direction}")


def transform_structured(value: Any, table: MappingTable, direction: Direction) -> Any:
    """Rebuild ``value`` with every text leaf masked or unmasked.

    Supported shapes are text, lists, tuples and dicts. Dict keys are kept
    verbatim; numbers, booleans, ``None`` and any other leaf pass through
    unchanged.
    """
    match value:
        case str():
            return _transform_text(value, table, direction)
        case list():
            return [transform_structured(item, table, direction) for item in value]
        case tuple():
            return tuple(transform_structured(item, table, direction) for item in value)
        case dict():
            return {key: transform_structured(item, table, direction) for key, item in value.items()}
        case _:
            return value


def mask_structured(value: Any, table: MappingTable) -> Any:
    return transform_structured(value, table, "mask")


def unmask_structured(value: Any, table: MappingTable) -> Any:
    return transform_structured(value, table, "unmask")
