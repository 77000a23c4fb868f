"""
TSETMC to Excel

Polls TSETMC market data on a fixed interval and appends validated
batches to an Excel workbook.
"""

__version__ = "0.1.0"
