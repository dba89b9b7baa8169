from typing import Iterable, Iterator, List, Optional, Sequence, Tuple
from homalg_reduce.core.exceptions import ConsistencyError, EntryOverflowError
from homalg_reduce.core.rings import ENTRY_MAX, INTEGERS, Ring, RingValue
from homalg_reduce.core.sparse_vector import SparseVector
from homalg_reduce.core.display import format_matrix

Triplet = Tuple[int, int, RingValue]


class SparseMatrix:
    """
    Sparse matrix stored twice: as an array of row vectors and as an array of
    column vectors.
    Every mutating method updates both arrays, so that for all `(r, c)`
    `rows[r].get(c) == columns[c].get(r)` (dual consistency).
    Indices are 1-based, as in the chain complexes the matrix describes.
    """

    def __init__(
        self,
        num_rows: int,
        num_cols: int,
        ring: Ring = INTEGERS,
        entry_max: int = ENTRY_MAX,
        check_consistency: bool = True
    ):
        if num_rows < 0 or num_cols < 0:
            raise ValueError("Number of rows and columns must be non-negative")
        if entry_max < 1:
            raise ValueError(f"entry_max must be positive, got {entry_max}")
        self.num_rows = num_rows
        self.num_cols = num_cols
        self.ring = ring
        self.entry_max = entry_max
        self.check_consistency = check_consistency
        self.rows: List[SparseVector] = [SparseVector(ring) for _ in range(num_rows)]
        self.columns: List[SparseVector] = [SparseVector(ring) for _ in range(num_cols)]

    @classmethod
    def from_triplets(
        cls,
        num_rows: int,
        num_cols: int,
        triplets: Iterable[Triplet],
        **kwargs
    ) -> "SparseMatrix":
        matrix = cls(num_rows, num_cols, **kwargs)
        matrix.load(triplets)
        return matrix

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.num_rows, self.num_cols)

    @property
    def num_entries(self) -> int:
        return sum(len(vec) for vec in self.rows)

    def row(self, row: int) -> SparseVector:
        self._check_indices(row, 1, check_col=False)
        return self.rows[row - 1]

    def column(self, col: int) -> SparseVector:
        self._check_indices(1, col, check_row=False)
        return self.columns[col - 1]

    def load(self, triplets: Iterable[Triplet]):
        """Bulk-set entries from `(row, col, value)` triplets."""
        for row, col, value in triplets:
            self.set(row, col, value)

    def entries(self) -> Iterator[Triplet]:
        """All stored entries in row-major order."""
        for r, vec in enumerate(self.rows, start=1):
            for c, value in vec.items():
                yield r, c, value

    def get(self, row: int, col: int) -> RingValue:
        """
        Return the entry at `(row, col)` (ring zero if absent).
        With consistency checking on, the column storage is read as well and
        must agree with the row storage.
        """
        self._check_indices(row, col)
        value = self.rows[row - 1].get(col)
        if self.check_consistency:
            mirrored = self.columns[col - 1].get(row)
            if not self.ring.equal(value, mirrored):
                raise ConsistencyError(
                    f"get: row and column entries don't match at ({row}, {col}): "
                    f"{value!r} != {mirrored!r}"
                )
        return value

    def set(self, row: int, col: int, value: RingValue):
        """
        Store `value` at `(row, col)` on both sides.
        The magnitude bound is checked before anything is touched. A failure on
        the column side after the row side succeeded leaves the matrix
        inconsistent; callers treat every failure here as fatal.
        """
        self._check_indices(row, col)
        self._check_magnitude(value, "set")
        if self.ring.is_zero(value):
            self.remove(row, col)
            return
        self.rows[row - 1].insert_or_update(col, value)
        self.columns[col - 1].insert_or_update(row, value)

    def remove(self, row: int, col: int) -> RingValue:
        """Remove the entry at `(row, col)` from both sides and return its value."""
        self._check_indices(row, col)
        row_value = self.rows[row - 1].remove(col)
        col_value = self.columns[col - 1].remove(row)
        if not self.ring.equal(row_value, col_value):
            raise ConsistencyError(
                f"remove: row and column entries don't match at ({row}, {col})"
            )
        return row_value

    def erase_row(self, row: int, delete: bool = False):
        """
        Erase every entry of a row, mirroring the removals into the columns.
        With `delete` the row vector is retired for good.
        """
        self._check_indices(row, 1, check_col=False)
        self._erase(self.rows[row - 1], row, self.columns, delete, "erase_row")

    def erase_column(self, col: int, delete: bool = False):
        """
        Erase every entry of a column, mirroring the removals into the rows.
        With `delete` the column vector is retired for good.
        """
        self._check_indices(1, col, check_row=False)
        self._erase(self.columns[col - 1], col, self.rows, delete, "erase_column")

    def add_rows(self, row1: int, row2: int, scalar: RingValue) -> int:
        """
        `row1 := row1 + scalar * row2`.
        >> largest magnitude among the entries written
        """
        self._check_indices(row1, 1, check_col=False)
        self._check_indices(row2, 1, check_col=False)
        return self._add_scaled(
            self.rows[row1 - 1], row1, self.rows[row2 - 1], self.columns, scalar
        )

    def add_columns(self, col1: int, col2: int, scalar: RingValue) -> int:
        """
        `col1 := col1 + scalar * col2`.
        >> largest magnitude among the entries written
        """
        self._check_indices(1, col1, check_row=False)
        self._check_indices(1, col2, check_row=False)
        return self._add_scaled(
            self.columns[col1 - 1], col1, self.columns[col2 - 1], self.rows, scalar
        )

    def check_data(self):
        """
        Full structural check of both arrays: ordering, bounds, zero-absence,
        entry counts, and that every entry is mirrored on the other side.
        Raises `ConsistencyError` on the first violation.
        """
        for r, vec in enumerate(self.rows, start=1):
            vec.check(self.num_cols, r, self.columns)
        for c, vec in enumerate(self.columns, start=1):
            vec.check(self.num_rows, c, self.rows)

    def release(self):
        """Free all vectors. The matrix is unusable afterwards."""
        for vec in self.rows:
            vec.clear()
        for vec in self.columns:
            vec.clear()
        self.rows = []
        self.columns = []
        self.num_rows = 0
        self.num_cols = 0

    def _check_indices(self, row: int, col: int, check_row: bool = True, check_col: bool = True):
        if check_row and not 1 <= row <= self.num_rows:
            raise IndexError(f"Row index {row} out of range [1, {self.num_rows}]")
        if check_col and not 1 <= col <= self.num_cols:
            raise IndexError(f"Column index {col} out of range [1, {self.num_cols}]")

    def _check_magnitude(self, value: RingValue, operation: str) -> int:
        magnitude = self.ring.magnitude(value)
        if magnitude > self.entry_max:
            raise EntryOverflowError(
                f"{operation}: entry's value is too big ({magnitude} > {self.entry_max})",
                magnitude=magnitude,
                bound=self.entry_max,
            )
        return magnitude

    def _erase(
        self,
        vec: SparseVector,
        own_index: int,
        others: Sequence[SparseVector],
        delete: bool,
        operation: str
    ):
        ring = self.ring

        def drop_mirror(ind: int, value: RingValue):
            mirrored = others[ind - 1].remove(own_index)
            if not ring.equal(mirrored, value):
                raise ConsistencyError(f"{operation}: row and column entries don't match")

        vec.erase_all(drop_mirror, delete=delete)

    def _add_scaled(
        self,
        target: SparseVector,
        target_index: int,
        source: SparseVector,
        others: Sequence[SparseVector],
        scalar: RingValue
    ) -> int:
        # source entries drive the merge; target entries not in source are untouched
        ring = self.ring
        max_magnitude = 0
        target.ensure_alive("add_scaled")
        source.ensure_alive("add_scaled")
        for ind, source_value in source.items():
            value = ring.add(target.get(ind), ring.mul(scalar, source_value))
            magnitude = self._check_magnitude(value, "add_scaled")
            max_magnitude = max(max_magnitude, magnitude)
            target.insert_or_update(ind, value)
            others[ind - 1].insert_or_update(target_index, value)
        return max_magnitude

    def to_rows(self) -> List[List[RingValue]]:
        """Dense list-of-rows copy (for display and small tests)."""
        dense = [[self.ring.zero] * self.num_cols for _ in range(self.num_rows)]
        for r, c, value in self.entries():
            dense[r - 1][c - 1] = value
        return dense

    def describe(self) -> str:
        """Listing of every row and column vector, deleted ones included."""
        lines = [f"{self.num_rows} rows and {self.num_cols} columns:"]
        for r, vec in enumerate(self.rows, start=1):
            lines.append(f"  The row number {r}, {_describe_vector(vec)}")
        lines.append("")
        for c, vec in enumerate(self.columns, start=1):
            lines.append(f"  The column number {c}, {_describe_vector(vec)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return format_matrix(self.to_rows(), replace_empty=False)

    def __repr__(self) -> str:
        return (
            f"SparseMatrix({self.num_rows}x{self.num_cols}, ring={self.ring.name}, "
            f"entries={self.num_entries})"
        )


def _describe_vector(vec: SparseVector) -> str:
    if vec.is_deleted:
        return "vector is deleted"
    body = "; ".join(f"{ind}, {value}" for ind, value in vec.items())
    return f"{vec.num_entries} entries: {body}."
