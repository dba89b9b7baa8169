import logging
import pytest
from hypothesis import given, settings, strategies as st
import numpy as np
from scipy import sparse
from homalg_reduce.core import (
    INTEGERS,
    UNIFIED,
    ChainComplex,
    ReducedComplex,
    reduce_complex,
    ConsistencyError,
    DeletedVectorError,
    EntryOverflowError,
    ReductionError
)
from homalg_reduce.monitoring import ReductionMonitor


# C_0 <- C_1 <- C_2 with ranks 1, 2, 1: a contractible 2-cell
DISK_RANKS = [1, 2, 1]
DISK_DIFFERENTIALS = [
    [(1, 1, 1), (2, 1, 1)],
    [(1, 1, 1), (1, 2, -1)],
]

# Z^2 <- Z^2 by [[1, 1], [1, 3]], which reduces to multiplication by 2
TORSION_RANKS = [2, 2]
TORSION_DIFFERENTIALS = [[(1, 1, 1), (1, 2, 1), (2, 1, 1), (2, 2, 3)]]


class TestReduction:
    """Test end-to-end reductions with known outcomes."""
    def test_contractible_complex_vanishes(self):
        reduced = reduce_complex(DISK_RANKS, DISK_DIFFERENTIALS)
        assert reduced.ranks == [0, 0, 0]
        assert reduced.differentials == [None, None]
        assert reduced.is_acyclic()
        assert reduced.betti_numbers() == [0, 0, 0]

    def test_torsion_survives(self):
        reduced = reduce_complex(TORSION_RANKS, TORSION_DIFFERENTIALS)
        assert reduced.ranks == [1, 1]
        # 3 - 1 * 1 after clearing the pivot row
        assert reduced.differentials == [[(1, 1, 2)]]
        assert reduced.betti_numbers() == [0, 0]
        assert reduced.torsion() == [{2: 1}, {}]

    def test_no_unit_means_no_change(self):
        reduced = reduce_complex([1, 1], [[(1, 1, 2)]])
        assert reduced.ranks == [1, 1]
        assert reduced.differentials == [[(1, 1, 2)]]
        assert reduced.torsion() == [{2: 1}, {}]

    def test_zero_differential(self):
        reduced = reduce_complex([1, 1], [[]])
        assert reduced.ranks == [1, 1]
        assert reduced.differentials == [[]]
        assert reduced.betti_numbers() == [1, 1]

    def test_circle(self):
        # one vertex and one loop: d(e) = v - v = 0
        reduced = reduce_complex([1, 1], [[(1, 1, 0)]])
        assert reduced.betti_numbers() == [1, 1]

    def test_interval(self):
        # two vertices joined by an edge
        reduced = reduce_complex([2, 1], [[(1, 1, -1), (1, 2, 1)]])
        assert reduced.ranks == [1, 0]
        assert reduced.differentials == [None]
        assert reduced.betti_numbers() == [1, 0]

    def test_projective_plane(self):
        # RP^2 with one cell per dimension: d_1 = 0, d_2 = 2
        reduced = reduce_complex([1, 1, 1], [[], [(1, 1, 2)]])
        assert reduced.ranks == [1, 1, 1]
        assert reduced.betti_numbers() == [1, 0, 0]
        assert reduced.torsion() == [{}, {2: 1}, {}]

    def test_empty_end_groups_are_kept(self):
        reduced = reduce_complex([0, 1, 2, 1, 0], [[]] + DISK_DIFFERENTIALS + [[]])
        assert reduced.ranks == [0, 0, 0, 0, 0]
        assert reduced.size == 5

    def test_all_groups_empty(self):
        reduced = reduce_complex([0, 0, 0])
        assert reduced.ranks == [0, 0, 0]
        assert reduced.differentials == [None, None]

    def test_single_group(self):
        reduced = reduce_complex([3])
        assert reduced.ranks == [3]
        assert reduced.differentials == []
        assert reduced.betti_numbers() == [3]

    def test_ranks_never_grow(self):
        ranks = [3, 3, 1]
        differentials = [
            [(1, 1, 1), (1, 2, -1), (2, 2, 1), (2, 3, -1), (3, 1, -1), (3, 3, 1)],
            [(1, 1, 1), (1, 2, 1), (1, 3, 1)],
        ]
        with ChainComplex(ranks, differentials) as chain:
            chain.reduce()
            reduced = chain.result()
        assert all(after <= before for after, before in zip(reduced.ranks, ranks))
        # triangle boundary filled by a face: a disk
        assert reduced.betti_numbers() == [1, 0, 0]

    def test_short_pass_can_be_disabled(self):
        with_short = reduce_complex(TORSION_RANKS, TORSION_DIFFERENTIALS)
        without_short = reduce_complex(TORSION_RANKS, TORSION_DIFFERENTIALS, short_pass=False)
        assert with_short.ranks == without_short.ranks
        assert with_short.differentials == without_short.differentials

    def test_huge_torsion_is_exact(self):
        reduced = reduce_complex([1, 1], [[(1, 1, 2 ** 70)]], entry_max=2 ** 80)
        assert reduced.torsion() == [{2 ** 70: 1}, {}]
        assert reduced.summary()['betti_numbers'] == [0, 0]


class TestElimination:
    """Test the entries left behind by a single cancellation."""
    def test_eliminate_pair_updates_remaining_block(self):
        # pivot -1 at (1, 1); every other column c gains -(v_c * u^-1) * column 1,
        # so (r, c) becomes old(r, c) + v_c * old(r, 1)
        old = [
            [-1, 2, 3],
            [4, 5, 6],
            [7, 8, 9],
        ]
        triplets = [(r + 1, c + 1, v) for r, row in enumerate(old) for c, v in enumerate(row)]
        chain = ChainComplex([3, 3], [triplets])
        largest = chain.eliminate_pair(1, 1, 1, -1)
        matrix = chain.matrix(0)
        assert matrix.rows[0].is_deleted
        assert matrix.columns[0].is_deleted
        assert chain.num_generators == [2, 2]
        for r in (2, 3):
            for c in (2, 3):
                expected = old[r - 1][c - 1] + old[0][c - 1] * old[r - 1][0]
                assert matrix.get(r, c) == expected
        assert largest == 30
        chain.check_data()
        assert chain.result().differentials == [[(1, 1, 13), (1, 2, 18), (2, 1, 22), (2, 2, 30)]]

    def test_eliminate_pair_keeps_untouched_columns(self):
        # column 3 has no entry in the pivot row, so it is left alone
        chain = ChainComplex([3, 2], [[(1, 1, 1), (1, 2, 5), (2, 1, 2), (2, 3, 7)]])
        chain.eliminate_pair(1, 1, 1, 1)
        matrix = chain.matrix(0)
        assert matrix.get(2, 2) == 0 - 5 * 2
        assert matrix.get(2, 3) == 7
        chain.release()


def build_canonical_complex(pieces):
    """
    Direct sum of free generators and pairs `x -> d * y`, as dense matrices.
    Slot `g` has one row per generator of group `g + 1`.
    """
    ranks = [0, 0, 0]
    entries = [[], []]
    for kind, group, d in pieces:
        ranks[group] += 1
        if kind == "pair":
            ranks[group + 1] += 1
            entries[group].append((ranks[group + 1], ranks[group], d))
    dense = [[[0] * ranks[s] for _ in range(ranks[s + 1])] for s in range(2)]
    for s in range(2):
        for r, c, d in entries[s]:
            dense[s][r - 1][c - 1] = d
    return ranks, dense


def change_basis(ranks, dense, ops):
    """Apply `e_i -> e_i + s * e_j` in a group, keeping both adjacent maps compatible."""
    for group, i, j, s in ops:
        n = ranks[group]
        i, j = i % max(n, 1), j % max(n, 1)
        if n < 2 or i == j or s == 0:
            continue
        if group < 2:
            for row in dense[group]:
                row[j] -= s * row[i]
        if group > 0:
            below = dense[group - 1]
            below[i] = [a + s * b for a, b in zip(below[i], below[j])]
    return dense


def to_triplets(matrix):
    return [(r + 1, c + 1, v) for r, row in enumerate(matrix) for c, v in enumerate(row) if v]


pieces_strategy = st.lists(
    st.one_of(
        st.tuples(st.just("free"), st.integers(0, 2), st.just(0)),
        st.tuples(st.just("pair"), st.integers(0, 1), st.integers(1, 4))
    ),
    max_size=7
)
ops_strategy = st.lists(
    st.tuples(st.integers(0, 2), st.integers(0, 10), st.integers(0, 10), st.integers(-2, 2)),
    max_size=15
)


class TestHomologyPreserved:
    """Reduction keeps homology on complexes hidden behind a change of basis."""
    @settings(max_examples=80, deadline=None)
    @given(pieces_strategy, ops_strategy)
    def test_betti_numbers_and_torsion(self, pieces, ops):
        ranks, dense = build_canonical_complex(pieces)
        dense = change_basis(ranks, dense, ops)
        differentials = [to_triplets(m) for m in dense]
        before = ReducedComplex(list(ranks), differentials, INTEGERS)
        after = reduce_complex(ranks, differentials, entry_max=10 ** 40)
        assert after.betti_numbers() == before.betti_numbers()
        assert after.torsion() == before.torsion()
        assert all(a <= b for a, b in zip(after.ranks, ranks))
        free = [sum(1 for kind, g, _ in pieces if kind == "free" and g == group) for group in range(3)]
        assert after.betti_numbers() == free


class TestUnifiedReduction:
    """Test reductions over Z[t]/(t^2 - 1)."""
    def test_t_is_a_pivot(self):
        reduced = reduce_complex([1, 1], [[(1, 1, (0, 1))]], ring=UNIFIED)
        assert reduced.ranks == [0, 0]

    def test_one_plus_t_is_not_a_pivot(self):
        reduced = reduce_complex([1, 1], [[(1, 1, (1, 1))]], ring="unified")
        assert reduced.ranks == [1, 1]
        assert reduced.differentials == [[(1, 1, (1, 1))]]

    def test_row_clearing_uses_inverse(self):
        # row [t, 1 + t]: clear column 2 with -(1 + t) * t^-1 = -(t + 1)
        # column 2 of row 2 becomes 1 - (t + 1) * 1 = -t
        reduced = reduce_complex(
            [2, 2],
            [[(1, 1, (0, 1)), (1, 2, (1, 1)), (2, 1, (1, 0)), (2, 2, (1, 0))]],
            ring=UNIFIED
        )
        assert reduced.ranks == [0, 0]

    def test_torsion_needs_integers(self):
        reduced = reduce_complex([1, 1], [[(1, 1, (1, 1))]], ring=UNIFIED)
        with pytest.raises(ValueError):
            reduced.betti_numbers()
        assert 'betti_numbers' not in reduced.summary()


class TestInputFormats:
    """Test the accepted differential representations."""
    def test_dense_input(self):
        d = np.array([[1, 1], [1, 3]])
        reduced = reduce_complex(TORSION_RANKS, [d])
        assert reduced.differentials == [[(1, 1, 2)]]

    def test_sparse_input(self):
        d = sparse.csr_matrix(np.array([[1, 1], [1, 3]]))
        reduced = reduce_complex(TORSION_RANKS, [d])
        assert reduced.differentials == [[(1, 1, 2)]]

    def test_dense_shape_mismatch(self):
        with pytest.raises(ValueError, match="shape"):
            ChainComplex([2, 2], [np.zeros((2, 3), dtype=int)])

    def test_unified_dense_input(self):
        d = np.zeros((1, 1, 2), dtype=int)
        d[0, 0, 1] = -1
        reduced = reduce_complex([1, 1], [d], ring=UNIFIED)
        assert reduced.ranks == [0, 0]

    def test_dense_output(self):
        reduced = reduce_complex([1, 1, 1], [[], [(1, 1, 2)]])
        assert reduced.to_dense(1).tolist() == [[2]]
        assert reduced.to_sparse(1).toarray().tolist() == [[2]]


class TestValidation:
    """Test rejection of malformed complexes."""
    def test_bad_ranks(self):
        with pytest.raises(ValueError):
            ChainComplex([])
        with pytest.raises(ValueError):
            ChainComplex([1, -1])
        with pytest.raises(ValueError):
            ChainComplex([1, 2.5])

    def test_wrong_number_of_differentials(self):
        with pytest.raises(ValueError, match="Expected 2 differentials"):
            ChainComplex([1, 1, 1], [[]])

    def test_entry_out_of_range(self):
        with pytest.raises(IndexError):
            ChainComplex([1, 1], [[(2, 1, 1)]])

    def test_unknown_ring(self):
        with pytest.raises(ValueError):
            ChainComplex([1], ring="octonions")

    def test_input_over_bound(self):
        chain = ChainComplex([1, 1], [[(1, 1, 10)]], entry_max=5)
        with pytest.raises(EntryOverflowError):
            chain.reduce()


class TestFailures:
    """Test that failures abort the run and free everything."""
    def test_overflow_releases_matrices(self, caplog):
        chain = ChainComplex(
            [2, 2],
            [[(1, 1, 1), (1, 2, 1), (2, 1, 1), (2, 2, -3)]],
            entry_max=3
        )
        with caplog.at_level(logging.ERROR, logger="homalg_reduce"):
            with pytest.raises(EntryOverflowError):
                chain.reduce()
        assert "Reduction aborted" in caplog.text
        assert all(m is None for m in chain._matrices)
        with pytest.raises(ReductionError, match="released"):
            chain.result()

    def test_corruption_is_detected(self):
        chain = ChainComplex(TORSION_RANKS, TORSION_DIFFERENTIALS)
        chain.matrix(0).columns[1].remove(1)
        with pytest.raises(ConsistencyError):
            chain.reduce()
        assert all(m is None for m in chain._matrices)

    def test_kill_from_empty_group(self):
        chain = ChainComplex([1, 1], [[(1, 1, 1)]])
        chain.num_generators[0] = 0
        with pytest.raises(ConsistencyError):
            chain.kill_generator(0, 1)

    def test_deleted_generator_cannot_be_touched(self):
        chain = ChainComplex([1, 2], [[(1, 1, 1), (2, 1, 1)]])
        chain.eliminate_generators(1)
        matrix = chain.matrix(0)
        assert matrix.columns[0].is_deleted
        with pytest.raises(DeletedVectorError):
            matrix.add_columns(1, 1, 1)

    def test_group_without_differential(self):
        chain = ChainComplex([1, 1], [[(1, 1, 1)]])
        with pytest.raises(IndexError):
            chain.eliminate_generators(0)


class TestLifecycle:
    """Test lazy materialisation and release."""
    def test_matrices_are_built_lazily(self):
        chain = ChainComplex([0, 1, 2, 1, 0], [[]] + DISK_DIFFERENTIALS + [[]])
        assert not any(chain.is_materialized(slot) for slot in range(4))
        assert chain.first_group == 1 and chain.last_group == 3
        assert chain.matrix(0) is None
        assert chain.matrix(3) is None
        chain.eliminate_generators(2)
        assert chain.is_materialized(1)
        assert chain.is_materialized(2)
        assert not chain.is_materialized(0)
        chain.release()

    def test_round_trip_without_reduction(self):
        with ChainComplex(TORSION_RANKS, TORSION_DIFFERENTIALS) as chain:
            reduced = chain.result()
        assert reduced.ranks == [2, 2]
        assert sorted(reduced.differentials[0]) == sorted(TORSION_DIFFERENTIALS[0])

    def test_load_matrix_twice(self):
        chain = ChainComplex([1, 1], [[(1, 1, 2)]])
        chain.load_matrix(0)
        with pytest.raises(ValueError, match="already"):
            chain.load_matrix(0)

    def test_load_matrix_with_triplets(self):
        chain = ChainComplex([1, 1])
        chain.load_matrix(0, [(1, 1, -1)])
        assert chain.reduce().result().ranks == [0, 0]

    def test_result_is_cached(self):
        chain = ChainComplex(DISK_RANKS, DISK_DIFFERENTIALS)
        first = chain.reduce().result()
        assert chain.result() is first
        chain.release()

    def test_release_is_idempotent(self):
        chain = ChainComplex(DISK_RANKS, DISK_DIFFERENTIALS)
        chain.release()
        chain.release()
        with pytest.raises(ReductionError):
            chain.reduce()

    def test_context_manager_releases(self):
        with ChainComplex(DISK_RANKS, DISK_DIFFERENTIALS) as chain:
            chain.reduce()
        with pytest.raises(ReductionError):
            chain.matrix(0)

    def test_check_data_after_reduction(self):
        with ChainComplex(TORSION_RANKS, TORSION_DIFFERENTIALS) as chain:
            chain.reduce()
            chain.check_data()
            assert chain.summary()['num_eliminations'] == 1
            assert repr(chain) == "ChainComplex: C_0(1) <- C_1(1)"


class TestMonitoringHooks:
    def test_monitor_sees_every_group(self):
        monitor = ReductionMonitor()
        reduce_complex(DISK_RANKS, DISK_DIFFERENTIALS, monitor=monitor)
        assert monitor.history['groups'] == [1, 2]
        assert monitor.initial_generators == [1, 2, 1]
        assert monitor.final_generators() == [0, 0, 0]
        assert monitor.total_eliminations == 2

    def test_progress_bar(self):
        reduced = reduce_complex(DISK_RANKS, DISK_DIFFERENTIALS, progress=True)
        assert reduced.ranks == [0, 0, 0]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
