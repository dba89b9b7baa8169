from typing import List, Optional


class ReductionMonitor:
    """
    Record what a reduction run does, group by group.
    > short and full passes that found something
    > cancelled pairs per group
    > live generator counts after each group
    > largest entry magnitude seen so far
    >>> from homalg_reduce import ChainComplex
    >>> from homalg_reduce.monitoring import ReductionMonitor
    >>>
    >>> monitor = ReductionMonitor(verbose=True)
    >>> with ChainComplex(ranks, differentials) as chain:
    >>>     chain.reduce(monitor=monitor)
    >>>     reduced = chain.result()
    >>>
    >>> print(monitor.summary())
    """
    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.history = {
            'groups': [],                   # List[int]
            'short_passes': [],             # List[Tuple[int, int]]
            'full_passes': [],              # List[Tuple[int, int]]
            'eliminations': [],             # List[Tuple[int, int]]
            'num_generators': [],           # List[Tuple[int, List[int]]]
            'max_magnitude': [],            # List[Tuple[int, int]]
        }
        self.initial_generators: Optional[List[int]] = None

    def on_group_start(self, group: int, num_generators: List[int]):
        if self.initial_generators is None:
            self.initial_generators = list(num_generators)

    def on_group_end(
        self,
        group: int,
        short_passes: int,
        full_passes: int,
        eliminated: int,
        num_generators: List[int],
        max_magnitude: int
    ):
        self.history['groups'].append(group)
        self.history['short_passes'].append((group, short_passes))
        self.history['full_passes'].append((group, full_passes))
        self.history['eliminations'].append((group, eliminated))
        self.history['num_generators'].append((group, list(num_generators)))
        self.history['max_magnitude'].append((group, max_magnitude))
        if self.verbose:
            self._print_group(group, short_passes, full_passes, eliminated, max_magnitude)

    def _print_group(
        self,
        group: int,
        short_passes: int,
        full_passes: int,
        eliminated: int,
        max_magnitude: int
    ):
        """Print group statistics to console."""
        parts = [f"Group {group:3d}:"]
        parts.append(f"passes={short_passes}+{full_passes}")
        parts.append(f"cancelled={eliminated}")
        parts.append(f"max_entry={max_magnitude}")
        print("  ".join(parts))

    @property
    def total_eliminations(self) -> int:
        return sum(count for _, count in self.history['eliminations'])

    def final_generators(self) -> Optional[List[int]]:
        if not self.history['num_generators']:
            return self.initial_generators
        return self.history['num_generators'][-1][1]

    def summary(self) -> str:
        lines = ["REDUCTION SUMMARY"]
        if self.initial_generators is None:
            lines.append("Nothing to reduce.")
            return "\n".join(lines)
        final = self.final_generators()
        lines.append(f"Initial ranks: {self.initial_generators} (total={sum(self.initial_generators)})")
        lines.append(f"Final ranks:   {final} (total={sum(final)})")
        lines.append(f"Cancelled pairs: {self.total_eliminations}")
        if self.history['max_magnitude']:
            largest = max(value for _, value in self.history['max_magnitude'])
            lines.append(f"Largest entry written: {largest}")
        lines.append("")
        for (group, short), (_, full), (_, count) in zip(
            self.history['short_passes'],
            self.history['full_passes'],
            self.history['eliminations']
        ):
            lines.append(f"  group {group}: {short}+{full} passes, {count} cancelled")
        return "\n".join(lines)
