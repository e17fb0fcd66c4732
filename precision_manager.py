"""
Multi-level precision management.

STRATEGY: the arbitrary precision shift starts at the working precision and
climbs a "staircase" of doubled bit-widths until the shifted constant term is
numerically significant, never exceeding a ceiling proportional to the output
precision and to the multiplicity of the cluster.

Temporaries at elevated precision live in a PrecisionScratch owned by the
caller; they are re-rounded from the source coefficients at every step and
dropped once the shift is over.
"""

import numbers
import mpmath
from dataclasses import dataclass
from typing import Iterator, List, Sequence


def to_mpc(value) -> mpmath.mpc:
    """
    Convert a coefficient to an mpc rounded at the current mpmath precision.

    Accepts Python and numpy numbers, fractions, decimal strings and mpmath
    values.
    """
    if isinstance(value, (mpmath.mpc, mpmath.mpf, complex, float, str)):
        return +mpmath.mpc(value)
    if isinstance(value, numbers.Integral):
        return +mpmath.mpc(int(value))
    if isinstance(value, numbers.Rational):
        return mpmath.mpc(mpmath.mpf(value.numerator) / value.denominator)
    if isinstance(value, numbers.Complex):
        return +mpmath.mpc(complex(value))
    raise ValueError(f"Unsupported coefficient type: {type(value).__name__}")


def epsilon_for_bits(bits: int) -> mpmath.mpf:
    """Machine epsilon 2^(1-bits) as an extended-exponent number."""
    return mpmath.ldexp(mpmath.mpf(1), 1 - bits)


@dataclass
class PrecisionPlan:
    """Precision plan for an adaptive shift."""
    base_bits: int          # working precision the shift starts from
    ceiling_bits: int       # escalation never goes beyond this
    multiplicity: int       # number of roots in the cluster being shifted

    def steps(self) -> Iterator[int]:
        """
        Yield the bit-widths of the staircase: base, 2*base, 4*base, ...

        The base precision is always yielded, even when it already exceeds
        the ceiling.
        """
        bits = self.base_bits
        yield bits
        while True:
            bits *= 2
            if bits > self.ceiling_bits:
                return
            yield bits

    def descend(self, bits: int) -> int:
        """Precision for the next (less sensitive) coefficient of the shift."""
        return max(bits - self.base_bits, self.base_bits)


def compute_shift_precision_plan(
    working_bits: int,
    output_bits: int,
    multiplicity: int,
) -> PrecisionPlan:
    """
    Compute the precision plan of the shift for a cluster.

    Args:
        working_bits: current working precision of the arbitrary precision domain
        output_bits: target output precision
        multiplicity: number of roots in the cluster

    Returns:
        PrecisionPlan whose ceiling is 2 * output_bits * multiplicity
    """
    ceiling = 2 * output_bits * multiplicity
    return PrecisionPlan(
        base_bits=working_bits,
        ceiling_bits=ceiling,
        multiplicity=multiplicity,
    )


class PrecisionScratch:
    """Scratch copy of a coefficient vector at an adjustable precision."""

    def __init__(self, source: Sequence, bits: int):
        self._source = list(source)
        self.bits = 0
        self.values: List[mpmath.mpc] = []
        self.resize(bits)

    def resize(self, bits: int):
        """Re-round the source coefficients to the given precision."""
        with mpmath.workprec(bits):
            self.values = [to_mpc(c) for c in self._source]
        self.bits = bits

    def release(self):
        self.values = []
        self._source = []
