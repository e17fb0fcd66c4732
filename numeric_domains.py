"""
Numeric domains used by the refinement engine.

The planner, the placer and the restart engine are written once and receive a
domain object that knows how to convert, measure and round numbers:

    float : numpy complex128, range [DBL_MIN, DBL_MAX]
    dpe   : mpmath mpc at 53 bits; mpmath exponents are unbounded, so this
            is the extended-exponent domain immune to overflow/underflow
    mp    : mpmath mpc at the working precision of the solver

Inclusion radii and coefficient moduli are always mpmath mpf, whatever the
domain, so that they never overflow.
"""

import contextlib
import math
import mpmath
import numpy as np
from typing import List, Sequence

from precision_manager import epsilon_for_bits, to_mpc

DBL_EPSILON = float(np.finfo(np.float64).eps)
DBL_MIN = float(np.finfo(np.float64).tiny)
DBL_MAX = float(np.finfo(np.float64).max)
DBL_MANT_DIG = 53
LOG2 = math.log(2)

# Exponent range of the extended-exponent representation: a signed 32 bit
# exponent.
DPE_MAX_EXP = 2**31 - 1


class NumericDomain:
    """Capability set shared by the three numeric domains."""

    name = "abstract"

    def __init__(self, precision: int, tiny: mpmath.mpf, huge: mpmath.mpf,
                 log_tiny: float, log_huge: float):
        self.precision = precision
        self.epsilon = epsilon_for_bits(precision)
        self.tiny = tiny
        self.huge = huge
        self.log_tiny = log_tiny
        self.log_huge = log_huge

    def __repr__(self):
        return f"{type(self).__name__}(precision={self.precision})"

    # --- conversions ---

    def convert(self, value):
        raise NotImplementedError

    def zero(self):
        return self.convert(0)

    def real(self, value):
        """Turn an mpf radius (or any real) into a scalar of this domain."""
        raise NotImplementedError

    def modulus(self, z) -> mpmath.mpf:
        """Modulus of z as an extended-exponent number."""
        return mpmath.mpf(abs(z))

    def polar(self, radius: mpmath.mpf, angle: float):
        """The point radius * exp(i * angle)."""
        raise NotImplementedError

    def coefficients(self, values: Sequence) -> list:
        return [self.convert(c) for c in values]

    # --- range ---

    def is_extreme(self, radius: mpmath.mpf) -> bool:
        """True when a radius was clamped to the representable range."""
        return radius == self.tiny or radius == self.huge

    def clamp_log_radius(self, log_radius: float) -> mpmath.mpf:
        """Radius exp(log_radius) clamped to [tiny, huge]."""
        if log_radius < self.log_tiny:
            return self.tiny
        if log_radius > self.log_huge:
            return self.huge
        r = mpmath.exp(log_radius)
        return min(max(r, self.tiny), self.huge)

    def zero_log_placeholder(self, moduli: Sequence[mpmath.mpf], g: mpmath.mpf) -> float:
        """
        Log-value used in place of log(0) for null coefficients.

        If the polynomial was shifted in a point of modulus g, the null
        trailing coefficients are replaced by small numbers according to the
        working precision and to the number of null coefficients.
        """
        if g != 0:
            ni = next((i for i, a in enumerate(moduli) if a != 0), 0)
            if ni > 0:
                return (float(mpmath.log(moduli[ni]))
                        + ni * (math.log(DBL_EPSILON) + float(mpmath.log(g * ni * 10))))
        return 2 * self.log_tiny

    # --- precision ---

    def working(self):
        """Context manager fixing the arithmetic precision of this domain."""
        return contextlib.nullcontext()

    def rescale(self, bits: int) -> "NumericDomain":
        """Return this domain at a different precision (same domain if fixed)."""
        return self


class FloatDomain(NumericDomain):
    """Fixed precision IEEE double complex numbers."""

    name = "float"

    def __init__(self):
        super().__init__(
            precision=DBL_MANT_DIG,
            tiny=mpmath.mpf(DBL_MIN),
            huge=mpmath.mpf(DBL_MAX),
            log_tiny=math.log(DBL_MIN),
            log_huge=math.log(DBL_MAX),
        )

    def convert(self, value):
        if isinstance(value, (mpmath.mpc, mpmath.mpf)):
            return np.complex128(complex(value))
        return np.complex128(complex(to_mpc(value)))

    def real(self, value):
        return float(value)

    def modulus(self, z) -> mpmath.mpf:
        return mpmath.mpf(float(np.abs(z)))

    def polar(self, radius, angle):
        r = float(radius)
        return np.complex128(complex(r * math.cos(angle), r * math.sin(angle)))

    def coefficients(self, values):
        return np.array([self.convert(c) for c in values], dtype=np.complex128)


class _MPFamilyDomain(NumericDomain):
    """Domains whose values are mpmath mpc numbers."""

    def __init__(self, precision: int):
        super().__init__(
            precision=precision,
            tiny=mpmath.ldexp(mpmath.mpf(1), -DPE_MAX_EXP),
            huge=mpmath.ldexp(mpmath.mpf(1), DPE_MAX_EXP),
            log_tiny=-DPE_MAX_EXP * LOG2,
            log_huge=DPE_MAX_EXP * LOG2,
        )

    def convert(self, value):
        with mpmath.workprec(self.precision):
            return to_mpc(value)

    def real(self, value):
        with mpmath.workprec(self.precision):
            return +mpmath.mpf(value)

    def polar(self, radius, angle):
        with mpmath.workprec(self.precision):
            theta = mpmath.mpf(angle)
            return mpmath.mpc(radius * mpmath.cos(theta), radius * mpmath.sin(theta))

    def working(self):
        return mpmath.workprec(self.precision)


class DPEDomain(_MPFamilyDomain):
    """Double precision mantissa with an extended exponent."""

    name = "dpe"

    def __init__(self):
        super().__init__(DBL_MANT_DIG)


class MPDomain(_MPFamilyDomain):
    """Arbitrary precision complex numbers."""

    name = "mp"

    def __init__(self, precision: int):
        super().__init__(precision)

    def zero_log_placeholder(self, moduli, g):
        # null coefficients are below the working precision
        return -self.precision * LOG2

    def rescale(self, bits: int) -> "MPDomain":
        return MPDomain(bits)


def make_domains(working_precision: int) -> dict:
    """The three domains of a solve, keyed by name."""
    domains: List[NumericDomain] = [FloatDomain(), DPEDomain(), MPDomain(working_precision)]
    return {d.name: d for d in domains}
