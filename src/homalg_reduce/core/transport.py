"""
Moving differentials in and out of the reduction engine.
The engine itself only speaks `(row, col, value)` triplets with 1-based
indices; everything here converts between triplets and the representations
collaborators hand over (packed integer codes, numpy arrays, scipy sparse
matrices).
"""
import numbers
import warnings
from typing import Dict, Iterable, List, Tuple
import numpy as np
from scipy import sparse
from homalg_reduce.core.rings import INTEGERS, Ring, RingValue, UnifiedRing

Triplet = Tuple[int, int, RingValue]

# packed entry layout: |code| = row * 2^32 + odd_bit + col
_ROW_SHIFT = 32
_ODD_BIT = 1 << 31
_COL_MASK = _ODD_BIT - 1
PACKED_INDEX_MAX = _COL_MASK


def _as_index(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise TypeError(f"{name} index must be an integer, got {value!r}")
    return int(value)


def validate_triplets(
    triplets: Iterable[Iterable],
    shape: Tuple[int, int],
    ring: Ring = INTEGERS
) -> List[Triplet]:
    """
    Check and normalise a list of `(row, col, value)` triplets for a matrix of
    the given shape.
    - indices are 1-based and must lie inside `shape` (`IndexError` otherwise)
    - values are coerced into the ring (`TypeError`/`ValueError` otherwise)
    - a position given twice keeps the last value, with a warning
    Zero values are dropped.
    """
    num_rows, num_cols = shape
    positions: Dict[Tuple[int, int], RingValue] = {}
    duplicates = 0
    for k, triplet in enumerate(triplets):
        try:
            row, col, value = triplet
        except (TypeError, ValueError):
            raise ValueError(f"Triplet {k} is not a (row, col, value) triple: {triplet!r}")
        row = _as_index(row, "Row")
        col = _as_index(col, "Column")
        if not 1 <= row <= num_rows:
            raise IndexError(f"Triplet {k}: row {row} out of range [1, {num_rows}]")
        if not 1 <= col <= num_cols:
            raise IndexError(f"Triplet {k}: column {col} out of range [1, {num_cols}]")
        if (row, col) in positions:
            duplicates += 1
        positions[(row, col)] = ring.coerce(value)
    if duplicates:
        warnings.warn(
            f"{duplicates} duplicate triplet position(s); the last value given wins"
        )
    return [
        (row, col, value)
        for (row, col), value in positions.items()
        if not ring.is_zero(value)
    ]


def encode_packed_entry(row: int, col: int, value: RingValue, ring: Ring = INTEGERS) -> int:
    """
    Pack a unit entry into one signed integer.
    The magnitude is `row * 2^32 + col`, with bit 31 set when the unit is
    `+-t` (unified ring only); the sign of the code is the sign of the unit.
    """
    if not 1 <= row <= PACKED_INDEX_MAX or not 1 <= col <= PACKED_INDEX_MAX:
        raise ValueError(f"Indices ({row}, {col}) do not fit the packed format")
    value = ring.coerce(value)
    if not ring.is_unit(value):
        raise ValueError(f"Only unit entries can be packed, got {value!r}")
    if isinstance(ring, UnifiedRing):
        is_odd = value[1] != 0
        sign = value[1] if is_odd else value[0]
    else:
        is_odd = False
        sign = value
    code = (row << _ROW_SHIFT) | (_ODD_BIT if is_odd else 0) | col
    return code if sign > 0 else -code


def decode_packed_entry(code: int, ring: Ring = INTEGERS) -> Triplet:
    """Inverse of `encode_packed_entry`."""
    code = _as_index(code, "Packed")
    is_negative = code < 0
    code = abs(code)
    is_odd = bool(code & _ODD_BIT)
    row = code >> _ROW_SHIFT
    col = code & _COL_MASK
    if row < 1 or col < 1:
        raise ValueError(f"Packed code {code} has no valid row/column")
    sign = -1 if is_negative else 1
    if isinstance(ring, UnifiedRing):
        value = (0, sign) if is_odd else (sign, 0)
    else:
        if is_odd:
            raise ValueError("Packed code selects the t component, which Z does not have")
        value = sign
    return row, col, value


def decode_packed_entries(codes: Iterable[int], ring: Ring = INTEGERS) -> List[Triplet]:
    return [decode_packed_entry(code, ring) for code in codes]


def triplets_from_dense(array, ring: Ring = INTEGERS) -> List[Triplet]:
    """
    Read the nonzero entries of a dense matrix.
    For the unified ring the array has shape `(rows, cols, 2)` holding the
    `1` and `t` components.
    """
    array = np.asarray(array)
    if isinstance(ring, UnifiedRing):
        if array.ndim != 3 or array.shape[2] != 2:
            raise ValueError(f"Expected an array of shape (rows, cols, 2), got {array.shape}")
        mask = np.any(array != 0, axis=2)
        rows, cols = np.nonzero(mask)
        return [
            (int(i) + 1, int(j) + 1, ring.coerce((array[i, j, 0], array[i, j, 1])))
            for i, j in zip(rows, cols)
        ]
    if array.ndim != 2:
        raise ValueError(f"Expected a 2D array, got shape {array.shape}")
    rows, cols = np.nonzero(array)
    return [(int(i) + 1, int(j) + 1, ring.coerce(array[i, j])) for i, j in zip(rows, cols)]


def triplets_to_dense(
    triplets: Iterable[Triplet],
    shape: Tuple[int, int],
    ring: Ring = INTEGERS
) -> np.ndarray:
    """Dense `int64` array from triplets; shape `(rows, cols, 2)` for the unified ring."""
    if isinstance(ring, UnifiedRing):
        dense = np.zeros((shape[0], shape[1], 2), dtype=np.int64)
        for row, col, value in triplets:
            dense[row - 1, col - 1, 0] = value[0]
            dense[row - 1, col - 1, 1] = value[1]
        return dense
    dense = np.zeros(shape, dtype=np.int64)
    for row, col, value in triplets:
        dense[row - 1, col - 1] = value
    return dense


def triplets_from_sparse(matrix) -> List[Triplet]:
    """Read an integer scipy sparse matrix (any format) as 1-based triplets."""
    coo = sparse.coo_matrix(matrix)
    coo.sum_duplicates()
    return [
        (int(i) + 1, int(j) + 1, INTEGERS.coerce(v))
        for i, j, v in zip(coo.row, coo.col, coo.data)
        if v != 0
    ]


def triplets_to_sparse(triplets: Iterable[Triplet], shape: Tuple[int, int]) -> sparse.coo_matrix:
    """Integer triplets as a scipy COO matrix (0-based, as scipy expects)."""
    triplets = list(triplets)
    rows = np.array([t[0] - 1 for t in triplets], dtype=np.int64)
    cols = np.array([t[1] - 1 for t in triplets], dtype=np.int64)
    data = np.array([t[2] for t in triplets], dtype=np.int64)
    return sparse.coo_matrix((data, (rows, cols)), shape=shape)
