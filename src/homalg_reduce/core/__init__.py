from homalg_reduce.core.rings import (
    ENTRY_MAX,
    INTEGERS,
    UNIFIED,
    Ring,
    IntegerRing,
    UnifiedRing,
    get_ring
)
from homalg_reduce.core.exceptions import (
    ReductionError,
    ConsistencyError,
    DeletedVectorError,
    EntryOverflowError
)
from homalg_reduce.core.sparse_vector import SparseVector
from homalg_reduce.core.sparse_matrix import SparseMatrix
from homalg_reduce.core.chain_complex import ChainComplex, reduce_complex
from homalg_reduce.core.reduced_complex import ReducedComplex
from homalg_reduce.core.homology import (
    compute_betti_numbers,
    compute_torsion,
    compute_elementary_divisors,
    compute_matrix_rank
)
from homalg_reduce.core.display import format_matrix

__all__ = [
    "ENTRY_MAX",
    "INTEGERS",
    "UNIFIED",
    "Ring",
    "IntegerRing",
    "UnifiedRing",
    "get_ring",
    "ReductionError",
    "ConsistencyError",
    "DeletedVectorError",
    "EntryOverflowError",
    "SparseVector",
    "SparseMatrix",
    "ChainComplex",
    "reduce_complex",
    "ReducedComplex",
    "compute_betti_numbers",
    "compute_torsion",
    "compute_elementary_divisors",
    "compute_matrix_rank",
    "format_matrix",
]
