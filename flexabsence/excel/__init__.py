from .reader import parse_excel_data, read_excel_bytes
from .transform import filter_by_period, reorder_columns

__all__ = ["filter_by_period", "parse_excel_data", "read_excel_bytes", "reorder_columns"]
