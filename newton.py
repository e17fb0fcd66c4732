"""
Single-point Newton correction.

newton_correction() evaluates p and p' at x by Horner's rule and returns the
Newton correction p(x)/p'(x) together with an inclusion radius estimate and a
flag telling whether further iterations can still improve x. Iterations stop
as soon as |p(x)| falls below the a-priori rounding error of its evaluation.
"""

from dataclasses import dataclass
from typing import Sequence

import mpmath

from horner import evaluation_error_bound
from numeric_domains import NumericDomain


@dataclass
class NewtonCorrection:
    """Result of one Newton step."""
    correction: object          # value to subtract from x, in the domain
    radius: mpmath.mpf          # n (|p(x)| + err) / |p'(x)|
    again: bool                 # False once |p(x)| is at the rounding level


def newton_correction(
    domain: NumericDomain,
    coefficients: Sequence,
    moduli: Sequence[mpmath.mpf],
    x,
) -> NewtonCorrection:
    """
    One Newton step for the polynomial with the given coefficients.

    Args:
        domain: numeric domain of the coefficients and of x
        coefficients: a[0], ..., a[n] in the domain
        moduli: |a[0]|, ..., |a[n]|
        x: current point

    Returns:
        NewtonCorrection. A vanishing derivative yields a null correction,
        an infinite radius and again=False.
    """
    n = len(coefficients) - 1
    with domain.working():
        p = coefficients[n]
        dp = domain.zero()
        for j in range(n - 1, -1, -1):
            dp = dp * x + p
            p = p * x + coefficients[j]

        p_mod = domain.modulus(p)
        dp_mod = domain.modulus(dp)
        err = evaluation_error_bound(moduli, domain.modulus(x), domain.precision)

        if dp_mod == 0:
            return NewtonCorrection(correction=domain.zero(), radius=mpmath.inf, again=False)

        correction = p / dp
        radius = n * (p_mod + err) / dp_mod
        return NewtonCorrection(correction=correction, radius=radius, again=bool(p_mod > err))
