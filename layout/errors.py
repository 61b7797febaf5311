"""Exceptions raised while normalizing, resolving or laying out tables."""


class TableLayoutError(Exception):
    """Base class for every table layout failure."""


class ColumnMismatchError(TableLayoutError):
    """A row's column count disagrees with the count established for its block."""

    def __init__(self, block_index: int, row_index: int, expected: int, actual: int) -> None:
        self.block_index = block_index
        self.row_index = row_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Improper number of columns used in row {row_index} of block "
            f"{block_index}: expected {expected}, got {actual}"
        )


class LayoutOverflowError(TableLayoutError):
    """Column widths could not be shrunk enough to fit the table width."""

    def __init__(self, overage: float) -> None:
        self.overage = overage
        super().__init__(
            f"Failed to fit table data within boundaries. Too wide by: {overage:.2f} units"
        )


class InvalidConstraintError(TableLayoutError):
    """A column width restriction contradicts itself."""

    def __init__(self, column: int, reason: str) -> None:
        self.column = column
        self.reason = reason
        super().__init__(f"Invalid width restriction for column {column}: {reason}")
