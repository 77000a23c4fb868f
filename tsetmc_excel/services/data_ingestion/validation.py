"""
Field validation and record merging.

A field is acceptable when it carries a non-blank value and, for fields in
the non-zero set, does not read as the integer 0. One endpoint's fields are
merged into a record as a unit: either every field passes and all of them
are written, or the record is left exactly as it was.
"""

import re
from typing import Collection, Mapping, Optional

from tsetmc_excel.schemas.market import Record

_INTEGER_PATTERN = re.compile(r"^\s*[+-]?[0-9]+\s*$")


def parse_int(value: str) -> Optional[int]:
    """Parse plain integer text (sign and surrounding whitespace allowed)."""
    if value is None or not _INTEGER_PATTERN.match(value):
        return None
    return int(value)


def validate_field(
    name: str,
    value: Optional[str],
    non_zero_items: Collection[str],
) -> Optional[str]:
    """
    Decide whether a single field value is acceptable.

    Returns the value when accepted, None when rejected. Text that is not
    an integer is never rejected by the non-zero rule.
    """
    if value is None or not value.strip():
        return None

    if name in non_zero_items and parse_int(value) == 0:
        return None

    return value


def merge_fields(
    existing: Record,
    incoming: Optional[Mapping[str, str]],
    non_zero_items: Collection[str],
) -> tuple[bool, Record]:
    """
    Merge one endpoint's fields into a record, all-or-nothing.

    Returns (True, existing) with every incoming pair written (incoming wins
    on key collision), or (False, existing) untouched when incoming is empty
    or any field is rejected.
    """
    if not incoming:
        return False, existing

    candidate: Record = {}
    for name, value in incoming.items():
        accepted = validate_field(name, value, non_zero_items)
        if accepted is None:
            return False, existing
        candidate[name] = accepted

    existing.update(candidate)
    return True, existing


def first_rejected_field(
    incoming: Mapping[str, str],
    non_zero_items: Collection[str],
) -> Optional[str]:
    """Name of the first field merge_fields would reject, for diagnostics."""
    for name, value in incoming.items():
        if validate_field(name, value, non_zero_items) is None:
            return name
    return None
