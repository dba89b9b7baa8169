from collections import Counter
from math import gcd
from typing import Dict, Iterable, List, Optional, Tuple
from homalg_reduce.core.rings import RingValue, IntegerRing

Triplet = Tuple[int, int, RingValue]


def _diagonalize(matrix: List[List[int]]) -> List[int]:
    """
    Diagonalise an integer matrix by unimodular row and column operations.
    >> the nonzero diagonal entries (absolute values), not yet a divisor chain
    - pivot on the smallest nonzero entry left in the lower-right block
    - clear its row and column by Euclidean steps; a nonzero remainder is
    smaller than the pivot, so it becomes the next pivot
    """
    a = [list(row) for row in matrix]
    m = len(a)
    n = len(a[0]) if m else 0
    diagonal = []
    t = 0
    while t < min(m, n):
        pivot = None
        for i in range(t, m):
            for j in range(t, n):
                if a[i][j] and (pivot is None or abs(a[i][j]) < abs(a[pivot[0]][pivot[1]])):
                    pivot = (i, j)
        if pivot is None:
            break
        _move_to(a, pivot, t)
        while True:
            for i in range(t + 1, m):
                if a[i][t]:
                    q = a[i][t] // a[t][t]
                    a[i] = [x - q * y for x, y in zip(a[i], a[t])]
            for j in range(t + 1, n):
                if a[t][j]:
                    q = a[t][j] // a[t][t]
                    for row in a:
                        row[j] -= q * row[t]
            leftovers = [(i, t) for i in range(t + 1, m) if a[i][t]]
            leftovers += [(t, j) for j in range(t + 1, n) if a[t][j]]
            if not leftovers:
                break
            smallest = min(leftovers, key=lambda pos: abs(a[pos[0]][pos[1]]))
            _move_to(a, smallest, t)
        diagonal.append(abs(a[t][t]))
        t += 1
    return diagonal


def _move_to(a: List[List[int]], position: Tuple[int, int], t: int):
    i, j = position
    if i != t:
        a[i], a[t] = a[t], a[i]
    if j != t:
        for row in a:
            row[j], row[t] = row[t], row[j]


def _to_divisor_chain(diagonal: List[int]) -> List[int]:
    """Replace pairs `(d_i, d_j)` by `(gcd, lcm)` until `d_1 | d_2 | ...`."""
    d = sorted(diagonal)
    for i in range(len(d)):
        for j in range(i + 1, len(d)):
            g = gcd(d[i], d[j])
            if g != d[i]:
                d[i], d[j] = g, d[i] * d[j] // g
    return d


def compute_elementary_divisors(
    triplets: Optional[Iterable[Triplet]],
    shape: Tuple[int, int]
) -> List[int]:
    """
    Elementary divisors (nonzero diagonal of the Smith normal form) of an
    integer matrix given by 1-based triplets.
    Exact: computed with Python integers, never floats.
    """
    if triplets is None or shape[0] == 0 or shape[1] == 0:
        return []
    dense = [[0] * shape[1] for _ in range(shape[0])]
    for row, col, value in triplets:
        dense[row - 1][col - 1] = int(value)
    return _to_divisor_chain(_diagonalize(dense))


def compute_matrix_rank(triplets: Optional[Iterable[Triplet]], shape: Tuple[int, int]) -> int:
    """Rank over `Q` of an integer matrix given by triplets."""
    return len(compute_elementary_divisors(triplets, shape))


def _require_integers(reduced):
    if not isinstance(reduced.ring, IntegerRing):
        raise ValueError(
            f"Homology ranks are only computed over Z, not over {reduced.ring.name}"
        )


def compute_betti_numbers(reduced) -> List[int]:
    """
    Betti numbers `[b_0, ..., b_{n-1}]` of a reduced integral complex.
    Slot `g` of the differentials maps group `g + 1` to group `g`, so
    `b_g = rank C_g - rank(d: C_g -> C_{g-1}) - rank(d: C_{g+1} -> C_g)`.
    """
    _require_integers(reduced)
    ranks = reduced.ranks
    map_ranks = [
        compute_matrix_rank(triplets, reduced.shape(slot))
        for slot, triplets in enumerate(reduced.differentials)
    ]
    betti_numbers = []
    for g, rank in enumerate(ranks):
        outgoing = map_ranks[g - 1] if g > 0 else 0
        incoming = map_ranks[g] if g < len(map_ranks) else 0
        betti_numbers.append(rank - outgoing - incoming)
    return betti_numbers


def compute_torsion(reduced) -> List[Dict[int, int]]:
    """
    Torsion of each homology group as `{order: multiplicity}`.
    Torsion of `H_g` comes from the elementary divisors greater than one of the
    differential into group `g`.
    """
    _require_integers(reduced)
    torsion = []
    for g in range(len(reduced.ranks)):
        if g < len(reduced.differentials):
            divisors = compute_elementary_divisors(reduced.differentials[g], reduced.shape(g))
        else:
            divisors = []
        torsion.append(dict(Counter(d for d in divisors if d > 1)))
    return torsion
