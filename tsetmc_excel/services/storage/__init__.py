"""
Storage module.

Append-only sheets in one Excel workbook.
"""

from tsetmc_excel.services.storage.workbook import (
    WorkbookStore,
    append_record,
    last_assigned_id,
    row_count,
)

__all__ = [
    "WorkbookStore",
    "append_record",
    "last_assigned_id",
    "row_count",
]
