"""
Horner evaluation with a rigorous relative error bound.

RIGOR PRINCIPLE: the bound returned by horner_with_error() accounts for the
rounding of every multiply-add at the stated precision and for the error
already accumulated in the running value, so that the exact value of the
polynomial lies in value * (1 +- bound).

Let v be the running value, x the point, a_j the next coefficient and
s = v*x + a_j the new running value. With eps the machine epsilon of the
working precision, the bound is updated as

    rel <- rel + ((rel + 2 eps) |v||x| + eps (|v||x| + |a_j|)) / |s|

A running value of modulus zero makes the bound infinite; this is not an
error, the caller simply learns that nothing is known about the value.
"""

from typing import Optional, Sequence, Tuple

import mpmath

from numeric_domains import NumericDomain
from precision_manager import epsilon_for_bits


def horner(domain: NumericDomain, coefficients: Sequence, x):
    """Value of the polynomial with the given coefficients at x."""
    n = len(coefficients) - 1
    with domain.working():
        value = coefficients[n]
        for j in range(n - 1, -1, -1):
            value = value * x + coefficients[j]
    return value


def horner_with_error(
    domain: NumericDomain,
    coefficients: Sequence,
    moduli: Sequence[mpmath.mpf],
    x,
    bits: Optional[int] = None,
) -> Tuple[object, mpmath.mpf]:
    """
    Evaluate the polynomial at x and bound the relative error.

    Args:
        domain: numeric domain of the coefficients and of x
        coefficients: a[0], ..., a[n] in the domain
        moduli: |a[0]|, ..., |a[n]|
        x: evaluation point
        bits: working precision; defaults to the domain precision. Only the
            arbitrary precision domain can honour a different value.

    Returns:
        (value, relative_error)
    """
    if bits is None or bits == domain.precision:
        work = domain
    else:
        work = domain.rescale(bits)
    eps = work.epsilon

    n = len(coefficients) - 1
    relative_error = mpmath.mpf(0)

    with work.working():
        ax = work.modulus(x)
        value = coefficients[n]
        for j in range(n - 1, -1, -1):
            s = value * x + coefficients[j]

            s_mod = work.modulus(s)
            vx_mod = work.modulus(value) * ax
            if s_mod == 0:
                relative_error = mpmath.inf
            elif relative_error != mpmath.inf:
                relative_error += ((relative_error + 2 * eps) * vx_mod
                                   + eps * (vx_mod + moduli[j])) / s_mod

            value = s

    return value, relative_error


def evaluation_error_bound(moduli: Sequence[mpmath.mpf], ax: mpmath.mpf,
                           bits: int) -> mpmath.mpf:
    """
    Absolute a-priori bound on the rounding error of a Horner evaluation at
    a point of modulus ax: 4 (n+1) eps sum |a_j| ax^j.
    """
    n = len(moduli) - 1
    acc = moduli[n]
    for j in range(n - 1, -1, -1):
        acc = acc * ax + moduli[j]
    return acc * 4 * (n + 1) * epsilon_for_bits(bits)
