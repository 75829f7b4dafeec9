"""Data subpackage - spreadsheet import/export and the built-in mock lists."""
