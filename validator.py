"""
INDEPENDENT validation of evaluations and shifts.

PRINCIPLE: validation must follow a computation path completely different
from the engine. This prevents systematic errors from validating themselves.

Validation strategies:
1. Exact recomputation with sympy (every binary float is a rational number)
2. Recomputation with mpmath at much higher precision (polyval, not Horner
   from this package)
3. Comparison of the actual error with the bound claimed by the engine
"""

import numbers
from dataclasses import dataclass
from typing import List, Sequence

import mpmath
import sympy

from precision_manager import to_mpc

# Precision of the mpmath reference path.
REFERENCE_BITS = 1024


@dataclass
class EvaluationValidation:
    """Check of a certified evaluation."""
    is_valid: bool
    reference: mpmath.mpc           # p(x) at REFERENCE_BITS
    relative_error: mpmath.mpf      # |value - reference| / |value|
    claimed_bound: mpmath.mpf
    sympy_agrees: bool              # exact value matches the mpmath reference
    notes: str


@dataclass
class ShiftValidation:
    """Check of shifted coefficients against the exact Taylor shift."""
    is_valid: bool
    exact: List[mpmath.mpc]         # exact coefficients rounded at REFERENCE_BITS
    max_error: mpmath.mpf
    claimed_bound: mpmath.mpf
    notes: str


def _mpf_to_sympy(x: mpmath.mpf) -> sympy.Rational:
    if x == 0:
        return sympy.Integer(0)
    # man_exp carries an unsigned mantissa
    man, exp = x.man_exp
    if x < 0:
        man = -man
    return sympy.Integer(int(man)) * sympy.Integer(2) ** int(exp)


def to_sympy(value) -> sympy.Expr:
    """Exact sympy value of a coefficient or of a point."""
    if isinstance(value, numbers.Rational):
        return sympy.Rational(value.numerator, value.denominator)
    with mpmath.workprec(REFERENCE_BITS):
        z = to_mpc(value)
    return _mpf_to_sympy(z.real) + sympy.I * _mpf_to_sympy(z.imag)


def sympy_to_mpc(value: sympy.Expr) -> mpmath.mpc:
    """Round an exact sympy number to an mpc at REFERENCE_BITS."""
    re, im = (sympy.Rational(part) for part in sympy.expand(value).as_real_imag())
    with mpmath.workprec(REFERENCE_BITS):
        return mpmath.mpc(mpmath.mpf(int(re.p)) / int(re.q), mpmath.mpf(int(im.p)) / int(im.q))


class ResultValidator:
    """Independent validator of the engine's numerical results."""

    def __init__(self):
        self.x = sympy.Symbol("x")

    def exact_shift(self, coefficients: Sequence, g) -> List[sympy.Expr]:
        """All the coefficients of p(x + g), in increasing degree, exactly."""
        x = self.x
        expr = sum(to_sympy(c) * x ** j for j, c in enumerate(coefficients))
        shifted = sympy.Poly(sympy.expand(expr.subs(x, x + to_sympy(g))), x)
        coeffs = list(reversed(shifted.all_coeffs()))
        return coeffs + [sympy.Integer(0)] * (len(coefficients) - len(coeffs))

    def exact_value(self, coefficients: Sequence, x) -> sympy.Expr:
        """p(x) in exact arithmetic."""
        xs = to_sympy(x)
        return sympy.expand(sum(to_sympy(c) * xs ** j for j, c in enumerate(coefficients)))

    def validate_evaluation(
        self,
        coefficients: Sequence,
        x,
        value,
        relative_error: mpmath.mpf,
    ) -> EvaluationValidation:
        """
        Check that the true p(x) lies in value * (1 +- relative_error).

        Args:
            coefficients: a[0], ..., a[n] as given to the engine
            x: evaluation point
            value: value computed by the engine
            relative_error: bound claimed by the engine
        """
        notes = []

        # === LEVEL 1: mpmath at REFERENCE_BITS ===
        with mpmath.workprec(REFERENCE_BITS):
            coeffs = [to_mpc(c) for c in coefficients]
            reference = mpmath.polyval(list(reversed(coeffs)), to_mpc(x))
            deviation = abs(to_mpc(value) - reference)
            computed_mod = abs(to_mpc(value))
            if computed_mod != 0:
                actual = deviation / computed_mod
            else:
                actual = mpmath.inf if deviation != 0 else mpmath.mpf(0)
        notes.append(f"Relative error: {mpmath.nstr(actual, 5)}, "
                     f"claimed: {mpmath.nstr(relative_error, 5)}")

        # === LEVEL 2: sympy exact value ===
        exact = sympy_to_mpc(self.exact_value(coefficients, x))
        with mpmath.workprec(REFERENCE_BITS):
            gap = abs(exact - reference)
            scale = max(abs(exact), mpmath.mpf(1))
            sympy_agrees = bool(gap <= scale * mpmath.ldexp(mpmath.mpf(1), 32 - REFERENCE_BITS))
        if not sympy_agrees:
            notes.append(f"mpmath and sympy disagree by {mpmath.nstr(gap, 5)}")

        # === VERDICT ===
        is_valid = sympy_agrees and (relative_error == mpmath.inf or actual <= relative_error)

        return EvaluationValidation(
            is_valid=is_valid,
            reference=reference,
            relative_error=actual,
            claimed_bound=mpmath.mpf(relative_error),
            sympy_agrees=sympy_agrees,
            notes="\n".join(notes),
        )

    def validate_shift(
        self,
        coefficients: Sequence,
        g,
        shifted: Sequence,
        bound: mpmath.mpf,
    ) -> ShiftValidation:
        """
        Check the first len(shifted) coefficients of p(x + g).

        Args:
            coefficients: a[0], ..., a[n] as given to the engine
            g: shift point
            shifted: c[0], ..., c[m] computed by the engine
            bound: absolute error bound claimed for every c[i]
        """
        exact = [sympy_to_mpc(c) for c in self.exact_shift(coefficients, g)[:len(shifted)]]
        with mpmath.workprec(REFERENCE_BITS):
            errors = [abs(to_mpc(c) - e) for c, e in zip(shifted, exact)]
            max_error = max(errors)

        notes = f"Max error: {mpmath.nstr(max_error, 5)}, bound: {mpmath.nstr(bound, 5)}"
        return ShiftValidation(
            is_valid=bool(max_error <= bound),
            exact=exact,
            max_error=max_error,
            claimed_bound=mpmath.mpf(bound),
            notes=notes,
        )
