import numbers
from abc import ABC, abstractmethod
from typing import Any, Tuple, Union

# half of the largest 32-bit signed integer
ENTRY_MAX = (2 ** 31 - 1) // 2

UnifiedValue = Tuple[int, int]
RingValue = Union[int, UnifiedValue]


class Ring(ABC):
    """
    Coefficient ring of a chain complex.
    The reduction engine only ever pivots on units, so no division is needed:
    a ring only has to add, multiply, recognise units and invert them.
    All operations are pure and total.
    """
    name: str = "ring"

    @property
    @abstractmethod
    def zero(self) -> RingValue:
        ...

    @property
    @abstractmethod
    def one(self) -> RingValue:
        ...

    @abstractmethod
    def coerce(self, value: Any) -> RingValue:
        """
        Normalise collaborator input into a canonical ring value.
        Raises `TypeError` or `ValueError` for input that is not a ring element.
        """

    @abstractmethod
    def add(self, v1: RingValue, v2: RingValue) -> RingValue:
        ...

    @abstractmethod
    def neg(self, v: RingValue) -> RingValue:
        ...

    @abstractmethod
    def mul(self, v1: RingValue, v2: RingValue) -> RingValue:
        ...

    @abstractmethod
    def magnitude(self, v: RingValue) -> int:
        """Non-negative size of `v`, compared against the entry bound."""

    def is_zero(self, v: RingValue) -> bool:
        return self.equal(v, self.zero)

    def equal(self, v1: RingValue, v2: RingValue) -> bool:
        return v1 == v2

    def is_unit(self, v: RingValue) -> bool:
        return self.magnitude(v) == 1

    def unit_inverse(self, u: RingValue) -> RingValue:
        """
        Inverse of a unit.
        Every unit of the shipped rings squares to one.
        """
        if not self.is_unit(u):
            raise ValueError(f"{u!r} is not a unit of {self.name}")
        return u

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class IntegerRing(Ring):
    """The integers `Z`; units are `+1` and `-1`."""
    name = "Z"

    @property
    def zero(self) -> int:
        return 0

    @property
    def one(self) -> int:
        return 1

    def coerce(self, value: Any) -> int:
        if isinstance(value, bool):
            raise TypeError("booleans are not integer ring values")
        try:
            as_int = int(value)
        except (TypeError, ValueError) as e:
            raise TypeError(f"Cannot interpret {value!r} as an integer: {e}")
        if as_int != value:
            raise ValueError(f"{value!r} is not an integer")
        return as_int

    def add(self, v1: int, v2: int) -> int:
        return v1 + v2

    def neg(self, v: int) -> int:
        return -v

    def mul(self, v1: int, v2: int) -> int:
        return v1 * v2

    def magnitude(self, v: int) -> int:
        return abs(v)


class UnifiedRing(Ring):
    """
    The ring `Z[t]/(t^2 - 1)` of unified homology.
    A value `(a, b)` stands for `a + b t`; multiplication uses `t^2 = 1`:
    - `(a, b) * (c, d) = (ac + bd, ad + bc)`
    - magnitude is `|a| + |b|`, so the units are `+-1` and `+-t`
    """
    name = "Z[t]/(t^2-1)"

    @property
    def zero(self) -> UnifiedValue:
        return (0, 0)

    @property
    def one(self) -> UnifiedValue:
        return (1, 0)

    def coerce(self, value: Any) -> UnifiedValue:
        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            return (int(value), 0)
        try:
            a, b = value
        except (TypeError, ValueError):
            raise TypeError(f"Cannot interpret {value!r} as an element of {self.name}")
        integers = IntegerRing()
        return (integers.coerce(a), integers.coerce(b))

    def add(self, v1: UnifiedValue, v2: UnifiedValue) -> UnifiedValue:
        return (v1[0] + v2[0], v1[1] + v2[1])

    def neg(self, v: UnifiedValue) -> UnifiedValue:
        return (-v[0], -v[1])

    def mul(self, v1: UnifiedValue, v2: UnifiedValue) -> UnifiedValue:
        return (
            v1[0] * v2[0] + v1[1] * v2[1],
            v1[0] * v2[1] + v1[1] * v2[0],
        )

    def magnitude(self, v: UnifiedValue) -> int:
        return abs(v[0]) + abs(v[1])


INTEGERS = IntegerRing()
UNIFIED = UnifiedRing()

_RINGS_BY_NAME = {
    "integer": INTEGERS,
    "z": INTEGERS,
    "unified": UNIFIED,
    "u": UNIFIED,
}


def get_ring(ring: Union[str, Ring]) -> Ring:
    """
    Resolve a ring given by instance or by name (`'integer'`/`'Z'`, `'unified'`/`'U'`).
    """
    if isinstance(ring, Ring):
        return ring
    if isinstance(ring, str) and ring.lower() in _RINGS_BY_NAME:
        return _RINGS_BY_NAME[ring.lower()]
    raise ValueError(f"Unknown ring: {ring}")
