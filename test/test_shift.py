import os
import sys

import mpmath
import numpy as np
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from numeric_domains import DPEDomain, FloatDomain, MPDomain
from precision_manager import compute_shift_precision_plan
from shift import adaptive_shift, shift_error_bound, shift_polynomial, taylor_shift
from validator import ResultValidator

# (x - 1.5)^2 (x + 2) (x - 3)
DOUBLE_ROOT = [-13.5, 15.75, -0.75, -4, 1]

DOMAINS = [FloatDomain(), DPEDomain(), MPDomain(128)]
DOMAIN_IDS = ["float", "dpe", "mp"]


def random_polynomial(seed, degree):
    rng = np.random.default_rng(seed)
    return [complex(float(a), float(b))
            for a, b in zip(rng.standard_normal(degree + 1), rng.standard_normal(degree + 1))]


class TestTaylorShift:
    """Synthetic division shift"""

    def test_square(self):
        domain = FloatDomain()
        shifted = taylor_shift(domain, domain.coefficients([0, 0, 1]), np.complex128(1))
        assert [complex(c) for c in shifted] == [1, 2, 1]

    def test_partial_shift(self):
        domain = MPDomain(128)
        coeffs = domain.coefficients(DOUBLE_ROOT)
        shifted = taylor_shift(domain, coeffs, domain.convert(1.5), 2)
        assert len(shifted) == 3
        assert shifted[0] == 0
        assert shifted[1] == 0
        assert shifted[2] == mpmath.mpf("-5.25")

    @pytest.mark.parametrize("domain", DOMAINS, ids=DOMAIN_IDS)
    def test_matches_exact_shift(self, domain):
        coeffs = random_polynomial(1, 7)
        g = complex(0.75, 0.5)
        dcoeffs = domain.coefficients(coeffs)
        with domain.working():
            moduli = [domain.modulus(c) for c in dcoeffs]
        shifted = taylor_shift(domain, dcoeffs, domain.convert(g))
        bound = shift_error_bound(moduli, mpmath.mpf(abs(g)), domain.precision)
        result = ResultValidator().validate_shift(coeffs, g, shifted, bound)
        assert result.is_valid, result.notes

    @pytest.mark.parametrize("domain", DOMAINS, ids=DOMAIN_IDS)
    def test_round_trip(self, domain):
        coeffs = random_polynomial(2, 6)
        g = domain.convert(complex(0.75, 0.5))
        dcoeffs = domain.coefficients(coeffs)
        with domain.working():
            moduli = [domain.modulus(c) for c in dcoeffs]
            shifted = taylor_shift(domain, dcoeffs, g)
            back = taylor_shift(domain, shifted, -g)
            errors = [domain.modulus(b - a) for a, b in zip(dcoeffs, back)]
        bound = shift_error_bound(moduli, 2 * domain.modulus(g), domain.precision)
        assert max(errors) <= bound

    def test_fixed_precision_result(self):
        domain = DPEDomain()
        result = shift_polynomial(domain, domain.coefficients(DOUBLE_ROOT), domain.convert(1.5), 2)
        assert result.moduli == [0, 0, mpmath.mpf("5.25")]
        assert result.significant
        assert result.bits == 53


class TestAdaptiveShift:
    """Precision escalation in the mp domain"""

    def test_significant_at_working_precision(self):
        domain = MPDomain(128)
        coeffs = domain.coefficients(DOUBLE_ROOT)
        moduli = [domain.modulus(c) for c in coeffs]
        plan = compute_shift_precision_plan(128, 64, 2)
        result = adaptive_shift(domain, DOUBLE_ROOT, moduli, domain.convert(0.5), 2, plan)
        assert result.significant
        assert result.bits == 128
        # p(0.5) = -6.25
        assert result.coefficients[0] == mpmath.mpf("-6.25")
        assert result.moduli[0] == mpmath.mpf("6.25")

    def test_escalates_to_ceiling_on_exact_zero(self):
        domain = MPDomain(128)
        coeffs = domain.coefficients(DOUBLE_ROOT)
        moduli = [domain.modulus(c) for c in coeffs]
        plan = compute_shift_precision_plan(128, 64, 2)
        messages = []
        result = adaptive_shift(domain, DOUBLE_ROOT, moduli, domain.convert(1.5), 2, plan,
                                log=messages.append)

        assert not result.significant
        assert result.bits == 256
        bound = shift_error_bound(moduli, mpmath.mpf(1.5), 256)
        assert result.moduli[0] == bound
        assert result.moduli[1] == bound
        assert result.moduli[2] == mpmath.mpf("5.25")
        assert any("maximum allowed precision" in m for m in messages)

    def test_coefficients_rounded_to_working_precision(self):
        domain = MPDomain(96)
        coeffs = random_polynomial(4, 5)
        dcoeffs = domain.coefficients(coeffs)
        moduli = [domain.modulus(c) for c in dcoeffs]
        plan = compute_shift_precision_plan(96, 64, 3)
        g = domain.convert(complex(0.25, -0.5))
        result = adaptive_shift(domain, coeffs, moduli, g, 3, plan)
        assert len(result.coefficients) == 4
        assert result.significant

        bound = shift_error_bound(moduli, domain.modulus(g), 96)
        validation = ResultValidator().validate_shift(coeffs, complex(0.25, -0.5),
                                                      result.coefficients, bound)
        assert validation.is_valid, validation.notes
