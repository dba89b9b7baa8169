__version__ = "0.1.0"
from homalg_reduce.core import (
    ChainComplex,
    ReducedComplex,
    SparseMatrix,
    reduce_complex,
    INTEGERS,
    UNIFIED
)
from homalg_reduce.monitoring import ReductionMonitor

__all__ = [
    "ChainComplex",
    "ReducedComplex",
    "SparseMatrix",
    "reduce_complex",
    "INTEGERS",
    "UNIFIED",
    "ReductionMonitor"
]
