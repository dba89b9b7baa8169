import logging
import numpy as np
from homalg_reduce import ChainComplex, reduce_complex, UNIFIED
from homalg_reduce.core import EntryOverflowError
from homalg_reduce.monitoring import ReductionMonitor

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

print("Chain Complex Reduction Tutorial")

# =================================
# Contractible Complex
# =================================
print("\n1. CONTRACTIBLE COMPLEX")
print("Creating C_0(1) <- C_1(2) <- C_2(1) with unit incidences")

disk = reduce_complex(
    ranks=[1, 2, 1],
    differentials=[
        [(1, 1, 1), (2, 1, 1)],
        [(1, 1, 1), (1, 2, -1)],
    ],
)
print(f"\nReduced: {disk!r}")
print(f"Betti numbers: {disk.betti_numbers()}")
print("\nInterpretation:")
print("  - every generator found a unit partner, so nothing survives")
print("  - all homology groups vanish")

# =================================
# Torsion Survives
# =================================
print("\n\n2. TORSION SURVIVES")
print("Z^2 <- Z^2 by [[1, 1], [1, 3]] (dense input)")

d = np.array([[1, 1], [1, 3]])
monitor = ReductionMonitor(verbose=True)
with ChainComplex([2, 2], [d]) as chain:
    chain.reduce(monitor=monitor)
    torsion = chain.result()
print(f"\n{torsion}")
print(f"Torsion per group: {torsion.torsion()}")
print("\nInterpretation:")
print("  - one pair is cancelled by the unit in the corner")
print("  - the remaining entry 2 is not a unit, so Z/2 stays visible in H_0")
print()
print(monitor.summary())

# =================================
# Projective Plane
# =================================
print("\n\n3. PROJECTIVE PLANE")
rp2 = reduce_complex([1, 1, 1], [[], [(1, 1, 2)]])
print(f"Summary: {rp2.summary()}")

# =================================
# Unified Coefficients
# =================================
print("\n\n4. UNIFIED COEFFICIENTS Z[t]/(t^2 - 1)")
print("Entries are pairs (a, b) standing for a + b t; +-t is a unit, 1 + t is not")

unified = reduce_complex(
    [2, 2],
    [[(1, 1, (0, 1)), (1, 2, (1, 1)), (2, 1, (1, 0)), (2, 2, (1, 1))]],
    ring=UNIFIED,
)
print(f"\n{unified}")

# =================================
# Entry Bound
# =================================
print("\n\n5. ENTRY BOUND")
print("Entries are kept below a configurable bound; the run aborts past it")
try:
    reduce_complex([2, 2], [[(1, 1, 1), (1, 2, 1), (2, 1, 1), (2, 2, -3)]], entry_max=3)
except EntryOverflowError as e:
    print(f"Aborted: {e} (magnitude={e.magnitude}, bound={e.bound})")
