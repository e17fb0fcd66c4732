import math
import os
import sys
from fractions import Fraction

import mpmath
import numpy as np
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import SolverConfig
from numeric_domains import (DBL_EPSILON, DBL_MAX, DBL_MIN, DPEDomain, FloatDomain,
                             MPDomain, make_domains)
from polynomial import MonomialPoly, derivative_coefficients
from precision_manager import (PrecisionPlan, PrecisionScratch, compute_shift_precision_plan,
                               epsilon_for_bits, to_mpc)


class TestNumericDomains:
    """Capabilities of the three numeric domains"""

    def test_make_domains(self):
        domains = make_domains(256)
        assert set(domains) == {"float", "dpe", "mp"}
        assert domains["mp"].precision == 256
        assert domains["dpe"].precision == 53

    def test_float_conversion(self):
        domain = FloatDomain()
        assert domain.convert(1.5) == np.complex128(1.5)
        assert isinstance(domain.convert(Fraction(1, 2)), np.complex128)
        assert domain.modulus(np.complex128(3 + 4j)) == 5

    def test_epsilon(self):
        assert FloatDomain().epsilon == DBL_EPSILON
        assert DPEDomain().epsilon == DBL_EPSILON
        assert MPDomain(200).epsilon == mpmath.ldexp(mpmath.mpf(1), -199)

    def test_float_clamping(self):
        domain = FloatDomain()
        assert domain.clamp_log_radius(-1000.0) == DBL_MIN
        assert domain.clamp_log_radius(1000.0) == DBL_MAX
        assert domain.is_extreme(domain.clamp_log_radius(1000.0))
        assert not domain.is_extreme(domain.clamp_log_radius(0.0))

    def test_dpe_range_is_wider(self):
        domain = DPEDomain()
        r = domain.clamp_log_radius(1000.0)
        assert not domain.is_extreme(r)
        assert r > DBL_MAX
        assert domain.is_extreme(domain.clamp_log_radius(1e10))

    def test_zero_placeholder_without_shift(self):
        moduli = [mpmath.mpf(0), mpmath.mpf(1)]
        domain = FloatDomain()
        assert domain.zero_log_placeholder(moduli, mpmath.mpf(0)) == 2 * math.log(DBL_MIN)

    def test_zero_placeholder_after_shift(self):
        moduli = [mpmath.mpf(0), mpmath.mpf(0), mpmath.mpf("5.25")]
        value = DPEDomain().zero_log_placeholder(moduli, mpmath.mpf("1.5"))
        expected = math.log(5.25) + 2 * (math.log(DBL_EPSILON) + math.log(30))
        assert value == pytest.approx(expected, rel=1e-12)

    def test_mp_placeholder_follows_precision(self):
        moduli = [mpmath.mpf(0), mpmath.mpf(1)]
        value = MPDomain(100).zero_log_placeholder(moduli, mpmath.mpf(2))
        assert value == pytest.approx(-100 * math.log(2))

    def test_rescale(self):
        domain = MPDomain(128)
        wider = domain.rescale(512)
        assert wider.precision == 512
        assert FloatDomain().rescale(512).precision == 53

    def test_polar(self):
        domain = MPDomain(128)
        with domain.working():
            z = domain.polar(mpmath.mpf(2), math.pi / 2)
            assert abs(z - 2j) < mpmath.mpf(10) ** -15


class TestPrecisionManager:
    """Staircase of precisions for the adaptive shift"""

    def test_epsilon(self):
        assert epsilon_for_bits(53) == DBL_EPSILON

    def test_steps_double_up_to_ceiling(self):
        plan = PrecisionPlan(base_bits=64, ceiling_bits=1000, multiplicity=2)
        assert list(plan.steps()) == [64, 128, 256, 512]

    def test_base_always_yielded(self):
        plan = PrecisionPlan(base_bits=128, ceiling_bits=100, multiplicity=1)
        assert list(plan.steps()) == [128]

    def test_descend(self):
        plan = PrecisionPlan(base_bits=128, ceiling_bits=512, multiplicity=2)
        assert plan.descend(512) == 384
        assert plan.descend(128) == 128

    def test_shift_plan_ceiling(self):
        plan = compute_shift_precision_plan(128, 64, 3)
        assert plan.base_bits == 128
        assert plan.ceiling_bits == 384
        assert list(plan.steps()) == [128, 256]

    def test_scratch_resize_and_release(self):
        scratch = PrecisionScratch(["0.1", 1], 64)
        low = scratch.values[0]
        scratch.resize(256)
        assert scratch.bits == 256
        with mpmath.workprec(256):
            assert scratch.values[0] != low
            assert abs(scratch.values[0] - mpmath.mpf("0.1")) < mpmath.mpf(10) ** -70
        scratch.release()
        assert scratch.values == []

    def test_to_mpc(self):
        with mpmath.workprec(100):
            assert abs(to_mpc(Fraction(1, 3)) - mpmath.mpf(1) / 3) < mpmath.mpf(10) ** -29
            assert to_mpc(np.complex128(1 + 2j)) == mpmath.mpc(1, 2)
            assert to_mpc(3) == 3
        with pytest.raises(ValueError):
            to_mpc(object())


class TestSolverConfig:
    """Validation of the configuration"""

    def test_defaults(self):
        config = SolverConfig()
        assert config.goal == "approximate"
        assert config.circle_relative_distance == 0.1
        assert config.output_tolerance == mpmath.ldexp(mpmath.mpf(1), -63)

    def test_explicit_tolerance(self):
        config = SolverConfig(output_tolerance=1e-10)
        assert config.output_tolerance == mpmath.mpf(1e-10)

    @pytest.mark.parametrize("kwargs", [
        {"goal": "solve"},
        {"circle_relative_distance": 0.0},
        {"max_newton_iterations": -1},
        {"working_precision": 1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SolverConfig(**kwargs)

    def test_log_dir_created(self, tmp_path):
        config = SolverConfig(log_dir=tmp_path / "logs")
        assert config.log_dir.is_dir()


class TestMonomialPoly:
    """Input polynomial"""

    def test_degree_and_presence(self):
        poly = MonomialPoly([1, 0, 1])
        assert poly.degree == 2
        assert poly.presence == [True, False, True]

    def test_underflowing_coefficient_stays_present(self):
        poly = MonomialPoly(["1e-400", 0, 1])
        _, moduli = poly.in_domain(FloatDomain())
        assert moduli == [DBL_MIN, 0, 1]

        _, moduli = poly.in_domain(DPEDomain())
        assert moduli[1] == 0
        assert mpmath.mpf("1e-401") < moduli[0] < mpmath.mpf("1e-399")

    def test_rejects_constant(self):
        with pytest.raises(ValueError):
            MonomialPoly([1])

    def test_rejects_zero_leading_coefficient(self):
        with pytest.raises(ValueError):
            MonomialPoly([1, 2, 0])

    def test_domain_copies_are_cached(self):
        poly = MonomialPoly([1, 2, 3])
        domain = MPDomain(128)
        first = poly.in_domain(domain)
        assert poly.in_domain(domain) is first
        assert poly.coefficient_sum(domain) == 6

    def test_derivative(self):
        assert derivative_coefficients([1, 2, 3, 4], 1) == [2, 6, 12]
        assert derivative_coefficients([1, 2, 3, 4], 2) == [6, 24]
        assert derivative_coefficients([1, 2, 3, 4], 0) == [1, 2, 3, 4]
