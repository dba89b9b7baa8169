from bisect import bisect_left
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple
from homalg_reduce.core.exceptions import ConsistencyError, DeletedVectorError
from homalg_reduce.core.rings import INTEGERS, Ring, RingValue


class SparseVector:
    """
    One row or one column of a sparse matrix.
    Holds `(index, value)` entries with 1-based, strictly increasing indices and
    never stores a ring zero: a zero entry is an absent entry.
    A vector is either alive (possibly empty) or deleted. Deletion is terminal:
    a deleted vector stays empty and refuses every search and mutation.
    """

    def __init__(self, ring: Ring = INTEGERS):
        self.ring = ring
        self._indices: List[int] = []
        self._values: Dict[int, RingValue] = {}
        self._deleted = False

    @property
    def num_entries(self) -> int:
        """Number of entries, or -1 once the vector is deleted."""
        if self._deleted:
            return -1
        return len(self._indices)

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    def __len__(self) -> int:
        return len(self._indices)

    def __iter__(self) -> Iterator[Tuple[int, RingValue]]:
        return iter(self.items())

    def __contains__(self, index: int) -> bool:
        return index in self._values

    def items(self) -> List[Tuple[int, RingValue]]:
        """Snapshot of the entries in index order."""
        values = self._values
        return [(ind, values[ind]) for ind in self._indices]

    def indices(self) -> List[int]:
        return list(self._indices)

    def get(self, index: int) -> RingValue:
        return self._values.get(index, self.ring.zero)

    def find_unit(self) -> Optional[Tuple[int, RingValue]]:
        """
        First entry (in index order) whose value is a unit of the ring.
        >> `(index, value)`, or `None` if the vector has no invertible entry
        """
        self.ensure_alive("find_unit")
        is_unit = self.ring.is_unit
        for ind in self._indices:
            value = self._values[ind]
            if is_unit(value):
                return ind, value
        return None

    def remove(self, index: int) -> RingValue:
        """Remove an entry and return its value (ring zero if it was absent)."""
        self.ensure_alive("remove")
        value = self._values.pop(index, None)
        if value is None:
            return self.ring.zero
        pos = bisect_left(self._indices, index)
        del self._indices[pos]
        return value

    def insert_or_update(self, index: int, value: RingValue):
        """
        Store `value` at `index`, keeping the index order.
        Storing a ring zero removes the entry instead.
        """
        self.ensure_alive("insert_or_update")
        if self.ring.is_zero(value):
            self.remove(index)
            return
        if index not in self._values:
            pos = bisect_left(self._indices, index)
            self._indices.insert(pos, index)
        self._values[index] = value

    def erase_all(
        self,
        on_removed: Optional[Callable[[int, RingValue], None]] = None,
        delete: bool = False
    ):
        """
        Remove every entry, front to back.
        `on_removed(index, value)` is called after each removal so the caller can
        mirror it into the orthogonal vectors; anything it raises propagates and
        aborts the sweep with the vector still sane.
        If `delete` is set the vector is retired afterwards.
        """
        self.ensure_alive("erase_all")
        while self._indices:
            ind = self._indices.pop(0)
            value = self._values.pop(ind)
            if on_removed is not None:
                on_removed(ind, value)
        if self._values:
            raise ConsistencyError("erase_all: entries remain after erasing")
        if delete:
            self._deleted = True

    def clear(self):
        """Drop all storage regardless of state. Used when a matrix is released."""
        self._indices = []
        self._values = {}

    def check(
        self,
        max_index: int,
        own_index: Optional[int] = None,
        others: Optional[Sequence["SparseVector"]] = None
    ):
        """
        Verify the internal invariants of the vector.
        - indices positive, bounded by `max_index` and strictly increasing
        - no stored zero, index list and value map agree, deleted means empty
        - if `others` is given, every entry is mirrored at `own_index` in the
        orthogonal vector it points to
        Raises `ConsistencyError` on the first violation.
        """
        if self._deleted and (self._indices or self._values):
            raise ConsistencyError("check: deleted vector is not empty")
        if len(self._indices) != len(self._values):
            raise ConsistencyError("check: wrong number of entries")
        if len(self._indices) > max_index:
            raise ConsistencyError("check: number of entries is too big")
        previous = 0
        for ind in self._indices:
            if ind < 1:
                raise ConsistencyError("check: index is not positive")
            if ind > max_index:
                raise ConsistencyError("check: index is too big")
            if ind <= previous:
                raise ConsistencyError("check: index is not increasing")
            if ind not in self._values:
                raise ConsistencyError("check: index has no value")
            value = self._values[ind]
            if self.ring.is_zero(value):
                raise ConsistencyError("check: value is 0")
            previous = ind
            if others is None:
                continue
            if not self.ring.equal(others[ind - 1].get(own_index), value):
                raise ConsistencyError("check: rows and columns don't match")

    def ensure_alive(self, operation: str):
        if self._deleted:
            raise DeletedVectorError(f"{operation}: vector is already deleted")

    def __repr__(self) -> str:
        if self._deleted:
            return "SparseVector(deleted)"
        body = "; ".join(f"{ind}, {value}" for ind, value in self.items())
        return f"SparseVector({self.num_entries} entries: {body})"
