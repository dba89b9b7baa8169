from typing import Any, Dict, List, Optional, Tuple
import numpy as np
from homalg_reduce.core.rings import IntegerRing, Ring, RingValue
from homalg_reduce.core.homology import compute_betti_numbers, compute_torsion
from homalg_reduce.core.transport import triplets_to_dense, triplets_to_sparse
from homalg_reduce.core.display import format_matrix

Triplet = Tuple[int, int, RingValue]


class ReducedComplex:
    """
    Outcome of a reduction run.
    - `ranks[g]`: number of surviving generators of group `g`
    - `differentials[g]`: surviving entries of the map from group `g + 1` to
    group `g`, re-indexed over the surviving generators, or `None` when one of
    the two groups has no generator left
    """

    def __init__(
        self,
        ranks: List[int],
        differentials: List[Optional[List[Triplet]]],
        ring: Ring
    ):
        if len(differentials) != max(len(ranks) - 1, 0):
            raise ValueError(
                f"Expected {len(ranks) - 1} differentials for {len(ranks)} groups, "
                f"got {len(differentials)}"
            )
        self.ranks = ranks
        self.differentials = differentials
        self.ring = ring

    @property
    def size(self) -> int:
        return len(self.ranks)

    def shape(self, slot: int) -> Tuple[int, int]:
        """Shape `(rows, cols)` of differential `slot`."""
        if slot < 0 or slot >= len(self.differentials):
            raise IndexError(f"Slot {slot} out of range [0, {len(self.differentials) - 1}]")
        return (self.ranks[slot + 1], self.ranks[slot])

    def to_dense(self, slot: int) -> np.ndarray:
        return triplets_to_dense(self.differentials[slot] or [], self.shape(slot), self.ring)

    def to_sparse(self, slot: int):
        """Differential `slot` as a scipy COO matrix (integer ring only)."""
        if not isinstance(self.ring, IntegerRing):
            raise ValueError("scipy export is only available over Z")
        return triplets_to_sparse(self.differentials[slot] or [], self.shape(slot))

    def betti_numbers(self) -> List[int]:
        return compute_betti_numbers(self)

    def torsion(self) -> List[Dict[int, int]]:
        return compute_torsion(self)

    def is_acyclic(self) -> bool:
        return all(rank == 0 for rank in self.ranks)

    def summary(self) -> Dict[str, Any]:
        summary = {
            'ring': self.ring.name,
            'ranks': list(self.ranks),
            'num_entries': [len(d) if d is not None else 0 for d in self.differentials],
        }
        if isinstance(self.ring, IntegerRing):
            summary['betti_numbers'] = self.betti_numbers()
            summary['torsion'] = self.torsion()
        return summary

    def __repr__(self) -> str:
        ranks_str = ' <- '.join(f'C_{i}({r})' for i, r in enumerate(self.ranks))
        return f"ReducedComplex: {ranks_str}"

    def __str__(self) -> str:
        lines = [repr(self)]
        for slot, triplets in enumerate(self.differentials):
            if triplets is None:
                continue
            rows, cols = self.shape(slot)
            dense = [[self.ring.zero] * cols for _ in range(rows)]
            for r, c, value in triplets:
                dense[r - 1][c - 1] = value
            lines.append(f"d: C_{slot + 1} -> C_{slot}")
            lines.append(format_matrix(dense))
        return '\n'.join(lines)
