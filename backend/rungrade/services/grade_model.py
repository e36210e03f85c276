"""Grade adjustment models.

A grade model maps a gradient percentage to a unitless pace multiplier:
values above 1 mean the gradient costs time compared to flat ground.
Two forms are available. The quadratic one is the default used when a
caller supplies no coefficients. The quartic one is the literature fit
that personal adjustment curves are compared against.
"""

import math
from functools import partial
from typing import Callable, NamedTuple, Optional, Sequence

from rungrade.core.constants import GRADIENT_CLAMP_PCT, MIN_GRADE_FACTOR

GradeModel = Callable[[float], float]


class GapCoefficients(NamedTuple):
    a: float
    b: float
    c: float
    d: float
    e: float


# Fitted quartic from Strava's improved GAP model research
GAP_COEFFICIENTS = GapCoefficients(
    a=-5.294439830640173e-7,
    b=-0.000003989571857841264,
    c=0.0020535661142752205,
    d=0.03265674125152065,
    e=1,
)


def clamp_gradient(gradient_pct: float) -> float:
    return max(-GRADIENT_CLAMP_PCT, min(GRADIENT_CLAMP_PCT, gradient_pct))


def default_grade_adjustment(gradient_pct: float) -> float:
    g = clamp_gradient(gradient_pct)
    # Floor keeps steep descents from producing absurd speeds; no upper cap
    return max(MIN_GRADE_FACTOR, 1 + g * 0.033 + g * g * 0.000233)


def polynomial_grade_adjustment(
    gradient_pct: float,
    coefficients: Sequence[float] = GAP_COEFFICIENTS,
) -> float:
    a, b, c, d, e = coefficients
    g = clamp_gradient(gradient_pct)
    return a * g**4 + b * g**3 + c * g**2 + d * g + e


def get_grade_model(coefficients: Optional[Sequence[float]] = None) -> GradeModel:
    """Return the quadratic default, or the quartic bound to `coefficients`."""
    if coefficients is None:
        return default_grade_adjustment
    coeffs = tuple(coefficients)
    if len(coeffs) != 5 or not all(
        isinstance(c, (int, float)) and math.isfinite(c) for c in coeffs
    ):
        raise ValueError("Grade model needs exactly five finite coefficients (a, b, c, d, e)")
    return partial(polynomial_grade_adjustment, coefficients=GapCoefficients(*coeffs))
