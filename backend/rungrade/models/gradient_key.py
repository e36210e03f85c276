import math
from dataclasses import dataclass
from functools import total_ordering

from rungrade.core.constants import EXTREME_GRADIENT_HIGH, EXTREME_GRADIENT_LOW

EXACT = "exact"
AT_MOST = "at_most"
AT_LEAST = "at_least"

_RANK = {AT_MOST: 0, EXACT: 1, AT_LEAST: 2}


@total_ordering
@dataclass(frozen=True)
class GradientKey:
    """Per-degree gradient bucket key.

    Either an exact integer degree or one of the two open-ended extremes
    ("≤ -35", "≥ 35"). Extremes sort before/after every exact key.
    """

    kind: str
    value: int

    @classmethod
    def exact(cls, value: int) -> "GradientKey":
        return cls(EXACT, int(value))

    @classmethod
    def at_most(cls, value: int) -> "GradientKey":
        return cls(AT_MOST, int(value))

    @classmethod
    def at_least(cls, value: int) -> "GradientKey":
        return cls(AT_LEAST, int(value))

    @classmethod
    def for_gradient(cls, gradient_pct: float) -> "GradientKey":
        """Round half up to the nearest degree, folding the extremes."""
        degree = int(math.floor(gradient_pct + 0.5))
        if degree <= EXTREME_GRADIENT_LOW:
            return cls.at_most(EXTREME_GRADIENT_LOW)
        if degree >= EXTREME_GRADIENT_HIGH:
            return cls.at_least(EXTREME_GRADIENT_HIGH)
        return cls.exact(degree)

    @property
    def is_exact(self) -> bool:
        return self.kind == EXACT

    @property
    def label(self) -> str:
        if self.kind == AT_MOST:
            return f"≤{self.value}"
        if self.kind == AT_LEAST:
            return f"≥{self.value}"
        return str(self.value)

    def sort_key(self):
        return (_RANK[self.kind], self.value)

    def __lt__(self, other):
        if not isinstance(other, GradientKey):
            return NotImplemented
        return self.sort_key() < other.sort_key()
