from .workbook import Table, WorkbookStore

__all__ = ["Table", "WorkbookStore"]
