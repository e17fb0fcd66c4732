"""
Shift of the variable x -> x + g by repeated synthetic division.

Only the first m+1 coefficients of p(x+g) are needed to re-seed a cluster of
m roots, so m+1 Horner divisions are performed: the i-th division leaves the
coefficient of x^i of the shifted polynomial.

In the arbitrary precision domain the shift is adaptive: the constant term
p(g) is recomputed at doubled precision until it is larger than the bound on
its rounding error, so that at least one bit of it is correct. The remaining
coefficients are less sensitive and are computed stepping the precision back
towards the working precision.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import mpmath

from numeric_domains import NumericDomain
from precision_manager import PrecisionPlan, PrecisionScratch, epsilon_for_bits


@dataclass
class ShiftResult:
    """First m+1 coefficients of a shifted polynomial."""
    coefficients: list
    moduli: List[mpmath.mpf]
    bits: int                   # highest precision used
    significant: bool           # False if the constant term stayed below its error


def _divide(values: list, g, start: int):
    """One synthetic division by (x - g) over values[start:], in place."""
    n = len(values) - 1
    t = values[n]
    for j in range(n - 1, start - 1, -1):
        t = t * g + values[j]
        values[j] = t
    return t


def taylor_shift(domain: NumericDomain, coefficients: Sequence, g, m: Optional[int] = None) -> list:
    """
    Coefficients c_0, ..., c_m of p(x + g), computed in the given domain.

    m defaults to the degree, which gives the whole shifted polynomial.
    """
    n = len(coefficients) - 1
    if m is None:
        m = n
    values = list(coefficients)
    with domain.working():
        return [_divide(values, g, i) for i in range(m + 1)]


def shift_error_bound(moduli: Sequence[mpmath.mpf], ag: mpmath.mpf, bits: int) -> mpmath.mpf:
    """
    Bound on the rounding error of the shifted coefficients:
    4 (n+1) eps sum |a_j| (1 + |g|)^j.
    """
    n = len(moduli) - 1
    acc = moduli[n]
    for j in range(n - 1, -1, -1):
        acc = acc * (1 + ag) + moduli[j]
    return acc * 4 * (n + 1) * epsilon_for_bits(bits)


def shift_polynomial(domain: NumericDomain, coefficients: Sequence, g, m: int) -> ShiftResult:
    """Fixed precision shift (float and dpe domains)."""
    shifted = taylor_shift(domain, coefficients, g, m)
    with domain.working():
        moduli = [domain.modulus(c) for c in shifted]
    return ShiftResult(coefficients=shifted, moduli=moduli,
                       bits=domain.precision, significant=True)


def adaptive_shift(
    domain: NumericDomain,
    source: Sequence,
    moduli: Sequence[mpmath.mpf],
    g,
    m: int,
    plan: PrecisionPlan,
    log: Optional[Callable[[str], None]] = None,
) -> ShiftResult:
    """
    Arbitrary precision shift with precision escalation.

    Args:
        domain: arbitrary precision domain at the working precision
        source: coefficients of p, re-rounded at every precision step
        moduli: |a_0|, ..., |a_n| at the working precision
        g: shift point
        m: number of roots in the cluster
        plan: staircase of precisions to try
        log: optional log sink

    Returns:
        ShiftResult rounded to the working precision. If the constant term
        never became significant, the moduli of c_0 .. c_{m-1} are replaced
        by the error bound reached at the highest precision.
    """
    n = len(source) - 1
    ag = domain.modulus(g)
    scratch = PrecisionScratch(source, plan.base_bits)
    try:
        significant = False
        bits = plan.base_bits
        bound = mpmath.inf
        for bits in plan.steps():
            if scratch.bits != bits:
                scratch.resize(bits)
            with mpmath.workprec(bits):
                c0 = _divide(scratch.values, g, 0)
                ac0 = mpmath.mpf(abs(c0))
            bound = shift_error_bound(moduli, ag, bits)
            if ac0 >= bound:
                significant = True
                break
            if log is not None:
                log(f"Shift: constant term not significant at {bits} bits")

        if not significant and log is not None:
            log(f"Shift: reached the maximum allowed precision ({bits} bits)")

        shifted = [c0]
        for i in range(1, m + 1):
            bits = plan.descend(bits)
            with mpmath.workprec(bits):
                shifted.append(_divide(scratch.values, g, i))
        highest = scratch.bits
    finally:
        scratch.release()

    with domain.working():
        shifted = [+c for c in shifted]
        result_moduli = [domain.modulus(c) for c in shifted]
    if not significant:
        result_moduli = [bound] * m + [result_moduli[m]]

    return ShiftResult(coefficients=shifted, moduli=result_moduli,
                       bits=highest, significant=significant)
