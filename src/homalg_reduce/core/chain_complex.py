import logging
import numbers
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import numpy as np
from scipy import sparse
from tqdm import tqdm
from homalg_reduce.core.exceptions import ConsistencyError, ReductionError
from homalg_reduce.core.rings import ENTRY_MAX, INTEGERS, Ring, RingValue, get_ring
from homalg_reduce.core.sparse_matrix import SparseMatrix
from homalg_reduce.core.reduced_complex import ReducedComplex
from homalg_reduce.core.transport import (
    triplets_from_dense,
    triplets_from_sparse,
    validate_triplets
)

logger = logging.getLogger(__name__)

Triplet = Tuple[int, int, RingValue]


class ChainComplex:
    """
    A free chain complex reduced by elementary collapses.
    Groups are numbered `0 .. size - 1`; differential slot `g` maps group `g + 1`
    to group `g`, so its rows are the generators of group `g + 1` and its columns
    those of group `g`. Generators are numbered from 1.

    Reduction pivots only on unit incidence numbers. Every pivot cancels one
    generator of a group against one of the group below; no division ever
    happens, so torsion survives intact in the reduced complex.

    The complex owns its matrices for one run. Use it as a context manager, or
    call `release()`, to free them:
    >>> with ChainComplex([1, 2, 1], [[(1, 1, 1), (2, 1, 1)], [(1, 1, 1), (1, 2, -1)]]) as c:
    >>>     reduced = c.reduce().result()
    >>> reduced.ranks
    [0, 0, 0]
    """

    def __init__(
        self,
        ranks: Sequence[int],
        differentials: Optional[Sequence[Any]] = None,
        ring: Union[str, Ring] = INTEGERS,
        entry_max: int = ENTRY_MAX,
        check_consistency: bool = True,
        short_pass: bool = True
    ):
        """
        Validate the complex description. Nothing is built yet: each
        differential is materialised the first time the reduction touches it.
        - `ranks`: generator count of every chain group, empty end groups included
        - `differentials`: `len(ranks) - 1` entries, each a list of 1-based
        `(row, col, value)` triplets, a dense array or a scipy sparse matrix
        """
        self.ring = get_ring(ring)
        ranks = list(ranks)
        if not ranks or any(
            isinstance(r, bool) or not isinstance(r, numbers.Integral) or r < 0 for r in ranks
        ):
            raise ValueError("Ranks must be a non-empty list of non-negative integers")
        self.ranks = [int(r) for r in ranks]
        self.size = len(self.ranks)
        self.entry_max = entry_max
        self.check_consistency = check_consistency
        self.short_pass = short_pass
        if differentials is None:
            differentials = [[] for _ in range(self.size - 1)]
        if len(differentials) != self.size - 1:
            raise ValueError(
                f"Expected {self.size - 1} differentials for {self.size} groups, "
                f"got {len(differentials)}"
            )
        self._triplets: List[Optional[List[Triplet]]] = [
            self._as_triplets(slot, d) for slot, d in enumerate(differentials)
        ]
        self.num_generators = list(self.ranks)
        nonempty = [g for g, r in enumerate(self.ranks) if r > 0]
        self.first_group: Optional[int] = nonempty[0] if nonempty else None
        self.last_group: Optional[int] = nonempty[-1] if nonempty else None
        self._matrices: List[Optional[SparseMatrix]] = [None] * (self.size - 1)
        self.max_magnitude = 0
        self.group_max_magnitude = 0
        self.num_eliminations = 0
        self._released = False
        self._result: Optional[ReducedComplex] = None

    def _as_triplets(self, slot: int, differential: Any) -> List[Triplet]:
        shape = self.shape(slot)
        if sparse.issparse(differential):
            if differential.shape != shape:
                raise ValueError(
                    f"Differential {slot} has shape {differential.shape}, expected {shape}"
                )
            differential = triplets_from_sparse(differential)
        elif isinstance(differential, np.ndarray):
            if differential.shape[:2] != shape:
                raise ValueError(
                    f"Differential {slot} has shape {differential.shape[:2]}, expected {shape}"
                )
            differential = triplets_from_dense(differential, self.ring)
        return validate_triplets(differential, shape, self.ring)

    def shape(self, slot: int) -> Tuple[int, int]:
        """Shape `(rows, cols)` of differential `slot`, fixed for the whole run."""
        if slot < 0 or slot >= self.size - 1:
            raise IndexError(f"Slot {slot} out of range [0, {self.size - 2}]")
        return (self.ranks[slot + 1], self.ranks[slot])

    def _is_active(self, slot: int) -> bool:
        # only differentials between the first and last nonempty group matter
        if self.first_group is None:
            return False
        return self.first_group <= slot < self.last_group

    def is_materialized(self, slot: int) -> bool:
        self.shape(slot)
        return self._matrices[slot] is not None

    def load_matrix(self, slot: int, triplets: Optional[Iterable[Triplet]] = None) -> SparseMatrix:
        """
        Build differential `slot` from triplets (the stored ones by default).
        A slot is built once; loading it again is an error.
        """
        self._ensure_alive()
        rows, cols = self.shape(slot)
        if self._matrices[slot] is not None:
            raise ValueError(f"Differential {slot} is already materialized")
        if triplets is None:
            triplets = self._triplets[slot]
        else:
            triplets = validate_triplets(triplets, (rows, cols), self.ring)
        matrix = SparseMatrix(
            rows, cols,
            ring=self.ring,
            entry_max=self.entry_max,
            check_consistency=self.check_consistency
        )
        self._matrices[slot] = matrix
        matrix.load(triplets)
        self._triplets[slot] = None
        logger.debug("Materialized differential %d (%dx%d, %d entries)",
                     slot, rows, cols, matrix.num_entries)
        return matrix

    def matrix(self, slot: int) -> Optional[SparseMatrix]:
        """
        Differential `slot`, materialised on first access.
        >> `None` for slots outside the nonempty part of the complex
        """
        self._ensure_alive()
        self.shape(slot)
        if not self._is_active(slot):
            return None
        if self._matrices[slot] is None:
            self.load_matrix(slot)
        return self._matrices[slot]

    def kill_generator(self, group: int, gen: int):
        """
        Retire generator `gen` of `group`: erase and delete its row in the
        differential below and its column in the differential above.
        """
        if self.num_generators[group] <= 0:
            raise ConsistencyError(f"kill_generator: group {group} has no generators left")
        if group > self.first_group:
            self.matrix(group - 1).erase_row(gen, delete=True)
        if group < self.last_group:
            self.matrix(group).erase_column(gen, delete=True)
        self.num_generators[group] -= 1

    def eliminate_pair(self, group: int, gen: int, inc_gen: int, unit: RingValue) -> int:
        """
        Cancel generator `gen` of `group` against generator `inc_gen` of
        `group - 1`, joined by the unit incidence number `unit`.
        Every other entry `v` in the row of `gen` is cleared by adding
        `-(v * unit^-1)` times column `inc_gen` to its column; then both
        generators are retired.
        >> largest magnitude written while clearing the row
        """
        ring = self.ring
        incidences = self.matrix(group - 1)
        pivot_row = incidences.row(gen)
        scale = ring.neg(ring.unit_inverse(unit))
        max_magnitude = 0
        # the row shrinks while we sweep it; iterate over a snapshot
        for idx, value in pivot_row.items():
            if idx == inc_gen:
                continue
            magnitude = incidences.add_columns(idx, inc_gen, ring.mul(value, scale))
            max_magnitude = max(max_magnitude, magnitude)
        if pivot_row.num_entries != 1:
            raise ConsistencyError(
                f"eliminate_pair: generator {gen} of group {group} is not killed cleanly "
                f"({pivot_row.num_entries} entries left in its row)"
            )
        self.kill_generator(group - 1, inc_gen)
        if pivot_row.num_entries != 0:
            raise ConsistencyError(
                f"eliminate_pair: generator {gen} of group {group} is not killed cleanly"
            )
        self.kill_generator(group, gen)
        self.num_eliminations += 1
        self.max_magnitude = max(self.max_magnitude, max_magnitude)
        self.group_max_magnitude = max(self.group_max_magnitude, max_magnitude)
        logger.debug("Eliminated generator %d of group %d against %d of group %d",
                     gen, group, inc_gen, group - 1)
        return max_magnitude

    def eliminate_generators(self, group: int, short: bool = False) -> int:
        """
        One pass over the generators of `group`, cancelling each one that has a
        unit incidence number with the group below.
        With `short`, only generators with at most 2 incidences are tried.
        >> number of eliminated pairs
        """
        if self.first_group is None or not self.first_group < group <= self.last_group:
            raise IndexError(f"Group {group} has no differential to reduce")
        # make sure every differential a kill may touch exists
        for slot in (group - 2, group - 1, group):
            if 0 <= slot < self.size - 1:
                self.matrix(slot)
        incidences = self.matrix(group - 1)
        eliminated = 0
        for gen in range(1, self.ranks[group] + 1):
            row = incidences.rows[gen - 1]
            if row.is_deleted:
                continue
            if short and row.num_entries > 2:
                continue
            pivot = row.find_unit()
            if pivot is None:
                continue
            inc_gen, unit = pivot
            self.eliminate_pair(group, gen, inc_gen, unit)
            eliminated += 1
        return eliminated

    def _reduce_group(self, group: int, monitor=None):
        before = self.num_generators[group]
        if monitor is not None:
            monitor.on_group_start(group, list(self.num_generators))
        short_passes = full_passes = 0
        self.group_max_magnitude = 0
        if self.short_pass:
            while self.eliminate_generators(group, short=True):
                short_passes += 1
        while self.eliminate_generators(group, short=False):
            full_passes += 1
        eliminated = before - self.num_generators[group]
        logger.info("Group %d: %d+%d passes, %d pair(s) cancelled, max entry %d",
                    group, short_passes, full_passes, eliminated, self.group_max_magnitude)
        if monitor is not None:
            monitor.on_group_end(
                group,
                short_passes=short_passes,
                full_passes=full_passes,
                eliminated=eliminated,
                num_generators=list(self.num_generators),
                max_magnitude=self.group_max_magnitude
            )

    def reduce(self, monitor=None, progress: bool = False) -> "ChainComplex":
        """
        Reduce the complex as far as unit pivots allow.
        Groups are processed in increasing order; in each, short passes repeat
        until one finds nothing, then full passes do the same.
        Any failure releases every matrix before it propagates.
        """
        self._ensure_alive()
        if self.first_group is None:
            return self
        groups = range(self.first_group + 1, self.last_group + 1)
        if progress:
            groups = tqdm(groups, desc="Reducing", unit="group")
        try:
            for group in groups:
                self._reduce_group(group, monitor)
        except Exception as e:
            logger.error("Reduction aborted: %s", e)
            self.release()
            raise
        return self

    def drain_matrix(self, slot: int) -> Optional[List[Triplet]]:
        """
        Remove and return the surviving entries of differential `slot`,
        re-indexed to consecutive positions over the live generators.
        >> `None` if either adjacent group has no generator left
        """
        self._ensure_alive()
        self.shape(slot)
        n_rows = self.num_generators[slot + 1]
        n_cols = self.num_generators[slot]
        if n_rows == 0 or n_cols == 0:
            return None
        matrix = self.matrix(slot)
        live_rows = [r for r, vec in enumerate(matrix.rows, start=1) if not vec.is_deleted]
        live_cols = [c for c, vec in enumerate(matrix.columns, start=1) if not vec.is_deleted]
        if len(live_rows) != n_rows or len(live_cols) != n_cols:
            raise ConsistencyError(f"drain_matrix: differential {slot} is corrupt")
        col_position = {c: k for k, c in enumerate(live_cols, start=1)}
        triplets = []
        for new_row, r in enumerate(live_rows, start=1):
            for c, _ in matrix.rows[r - 1].items():
                if c not in col_position:
                    raise ConsistencyError(
                        f"drain_matrix: entry ({r}, {c}) lies in a deleted column"
                    )
                value = matrix.remove(r, c)
                triplets.append((new_row, col_position[c], value))
        return triplets

    def result(self) -> ReducedComplex:
        """
        Drain every differential into a `ReducedComplex`.
        Draining empties the matrices, so the result is computed once and cached.
        """
        if self._result is None:
            self._ensure_alive()
            differentials = [self.drain_matrix(slot) for slot in range(self.size - 1)]
            self._result = ReducedComplex(list(self.num_generators), differentials, self.ring)
        return self._result

    def check_data(self):
        """Full consistency check of every materialised differential."""
        for matrix in self._matrices:
            if matrix is not None:
                matrix.check_data()

    def release(self):
        """Free every materialised matrix. Safe to call more than once."""
        for matrix in self._matrices:
            if matrix is not None:
                matrix.release()
        self._matrices = [None] * (self.size - 1)
        self._triplets = [None] * (self.size - 1)
        self._released = True

    def _ensure_alive(self):
        if self._released:
            raise ReductionError("The chain complex has been released")

    def __enter__(self) -> "ChainComplex":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    def summary(self) -> Dict[str, Any]:
        return {
            'ring': self.ring.name,
            'ranks': list(self.ranks),
            'num_generators': list(self.num_generators),
            'num_eliminations': self.num_eliminations,
            'max_magnitude': self.max_magnitude,
            'materialized': [m is not None for m in self._matrices],
        }

    def __repr__(self) -> str:
        dims_str = ' <- '.join(f'C_{i}({d})' for i, d in enumerate(self.num_generators))
        return f"ChainComplex: {dims_str}"


def reduce_complex(
    ranks: Sequence[int],
    differentials: Optional[Sequence[Any]] = None,
    ring: Union[str, Ring] = INTEGERS,
    monitor=None,
    progress: bool = False,
    **options
) -> ReducedComplex:
    """
    Reduce a chain complex in one call and return the reduced complex.
    All matrices are released when the call returns, successfully or not.
    `options` are passed to `ChainComplex` (`entry_max`, `check_consistency`,
    `short_pass`).
    """
    with ChainComplex(ranks, differentials, ring=ring, **options) as complex_:
        complex_.reduce(monitor=monitor, progress=progress)
        return complex_.result()
