"""
Dense monomial polynomials.

The coefficients are stored as given (ints, floats, complex numbers,
fractions, decimal strings or mpmath values) in increasing degree order:

    p(x) = a[0] + a[1]*x + ... + a[n]*x^n

Each numeric domain gets its own rounded copy of the coefficients and of their
moduli; the copies are cached per domain name and precision.
"""

from typing import Dict, List, Sequence, Tuple

import mpmath

from numeric_domains import NumericDomain
from precision_manager import to_mpc

# Precision used to decide whether an input coefficient is zero.
_INPUT_BITS = 256


class MonomialPoly:
    """A polynomial given by its coefficients in the monomial basis."""

    def __init__(self, coefficients: Sequence, user_defined: bool = False):
        """
        Args:
            coefficients: a[0], ..., a[n] with a[n] != 0 and n >= 1
            user_defined: True for polynomials whose starting points must be
                placed on the unit circle without looking at the coefficients
        """
        coefficients = list(coefficients)
        if len(coefficients) < 2:
            raise ValueError("The polynomial must have degree at least 1")

        with mpmath.workprec(_INPUT_BITS):
            exact = [to_mpc(c) for c in coefficients]
        if exact[-1] == 0:
            raise ValueError("The leading coefficient must be nonzero")

        self.coefficients = coefficients
        self.degree = len(coefficients) - 1
        self.user_defined = user_defined
        # presence bitmap: False marks a null coefficient
        self.presence: List[bool] = [c != 0 for c in exact]
        self._cache: Dict[Tuple[str, int], Tuple[list, List[mpmath.mpf]]] = {}

    def __repr__(self):
        return f"MonomialPoly(degree={self.degree})"

    def in_domain(self, domain: NumericDomain) -> Tuple[list, List[mpmath.mpf]]:
        """
        Coefficients rounded to the domain and their moduli.

        Absent coefficients have modulus exactly zero. A present coefficient
        that underflows in the domain keeps the smallest representable
        modulus, so that the planner does not take it for an absent one.
        """
        key = (domain.name, domain.precision)
        if key not in self._cache:
            coeffs = domain.coefficients(self.coefficients)
            with domain.working():
                moduli = []
                for c, present in zip(coeffs, self.presence):
                    if not present:
                        moduli.append(mpmath.mpf(0))
                        continue
                    a = domain.modulus(c)
                    moduli.append(a if a != 0 else domain.tiny)
            self._cache[key] = (coeffs, moduli)
        return self._cache[key]

    def coefficient_sum(self, domain: NumericDomain) -> mpmath.mpf:
        """Sum of the coefficient moduli."""
        _, moduli = self.in_domain(domain)
        return mpmath.fsum(moduli)


def derivative_coefficients(coefficients: Sequence, order: int) -> list:
    """
    Coefficients of the derivative of the given order.

    Each derivation scales a[k+1] by (k+1) and drops the constant term, so
    the result has len(coefficients) - order entries.
    """
    coeffs = list(coefficients)
    for _ in range(order):
        coeffs = [coeffs[k + 1] * (k + 1) for k in range(len(coeffs) - 1)]
    return coeffs
