"""
Cluster restart.

A cluster of m approximations that converged together is re-seeded around a
better center: a zero of the (m-1)-th derivative of p close to the super
center of the cluster. Around that point the m roots of the cluster behave
like the roots of the first m+1 coefficients of the shifted polynomial, so
new starting points are placed with the planner/placer on those coefficients
and translated back.

STATE MACHINE FOR EACH CLUSTER:
1. Eligibility: user-defined polynomials, singletons and clusters with a
   member that no longer needs iterating are skipped; at least one member
   must be CLUSTERED with tag UNKNOWN (goal "count") or UNKNOWN/ISOLATED
   (other goals)
2. Super-disk (center sc, radius sr)
3. Width: sr > |sc| defers the restart
4. Newton isolation from the roots of the other clusters
5. (m-1)-th derivative of p
6. Newton iterations on the derivative from sc; the center must converge
   within max_newton_iterations and stay in the super-disk
7. Shift of p to the refined center g (adaptive in the mp domain)
8. Re-seed with the planner/placer and translate back by g

Every stage returns None to proceed or the reason for deferring. A deferred
restart marks the members CLUSTERED and leaves the context consistent; it is
retried on a later pass.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import mpmath

from cluster import super_disk
from newton import newton_correction
from numeric_domains import DBL_MAX
from polynomial import derivative_coefficients
from precision_manager import compute_shift_precision_plan
from shift import ShiftResult, adaptive_shift, shift_polynomial
from solver_context import InclusionTag, RootStatus, SolverContext
from starting import place_starting_points

# Multiplicative factor of n in the isolation test of the fixed exponent
# domains: a foreign root closer than (sr + rad) * factor * n breaks it.
ISOLATION_FACTORS: Dict[str, int] = {
    "float": 5,
    "dpe": 2,
}

# mp domain: sr * sum 1 / (|sc - z_k| - rad_k - sr) must not exceed this.
MP_ISOLATION_THRESHOLD = mpmath.mpf("0.3")

# mp domain: a restart is kept only if the new cluster radius is below
# this fraction of the super radius.
MP_SHRINK_FACTOR = mpmath.mpf("0.25")

RESTARTED = "restarted"
SKIPPED = "skipped"
DEFERRED = "deferred"


@dataclass
class RestartReport:
    """Outcome of the restart of one cluster."""
    cluster: int
    outcome: str                # restarted | skipped | deferred
    reason: str = ""
    center: Optional[object] = None


class ClusterRestartEngine:
    """Runs the restart state machine over the clusters of a context."""

    def __init__(self, ctx: SolverContext, domain_name: str):
        self.ctx = ctx
        self.domain_name = domain_name
        self.domain = ctx.domain(domain_name)

    @property
    def roots(self):
        return self.ctx.roots[self.domain_name]

    @property
    def radii(self):
        return self.ctx.radii[self.domain_name]

    # --- passes ---

    def run(self) -> List[RestartReport]:
        """One restart pass over all the current clusters."""
        ctx = self.ctx
        if ctx.poly.user_defined:
            ctx.log("Restart: skipped for user-defined polynomials")

        reports = [self.restart_cluster(i) for i in range(len(ctx.clusters))]

        restarted = sum(1 for r in reports if r.outcome == RESTARTED)
        ctx.log(f"Restart ({self.domain_name}): {restarted}/{len(reports)} clusters restarted")
        return reports

    def newton_isolated_clusters(self) -> List[int]:
        """
        Indices of the eligible clusters that are Newton isolated.

        Runs only the eligibility, super-disk, width and isolation stages;
        sets ctx.newton_isolated when at least one cluster passes.
        """
        ctx = self.ctx
        isolated: List[int] = []
        for i in range(len(ctx.clusters)):
            if self.skip_reason(i) is not None:
                continue
            sc, sr = super_disk(self.domain, self.roots, self.radii, ctx.clusters.cluster(i))
            reason = self._check_width(sc, sr) or self._check_isolation(i, sc, sr)
            if reason is not None:
                self._defer(i, reason)
                continue
            isolated.append(i)
            ctx.newton_isolated = True
        return isolated

    # --- one cluster ---

    def restart_cluster(self, i: int) -> RestartReport:
        reason = self.skip_reason(i)
        if reason is not None:
            return RestartReport(i, SKIPPED, reason)

        ctx = self.ctx
        sc, sr = super_disk(self.domain, self.roots, self.radii, ctx.clusters.cluster(i))
        ctx.log(f"Restart: cluster {i}, sc={self._fmt(sc)}, sr={mpmath.nstr(sr, 5)}")

        reason = self._check_width(sc, sr) or self._check_isolation(i, sc, sr)
        if reason is not None:
            return self._defer(i, reason)

        coefficients, moduli = ctx.coefficients(self.domain)
        g, reason = self._refine_center(i, coefficients, sc, sr)
        if reason is not None:
            return self._defer(i, reason)

        shifted, reason = self._shift(i, coefficients, moduli, g)
        if reason is not None:
            return self._defer(i, reason)

        reason = self._reseed(i, shifted, g, sr)
        if reason is not None:
            return self._defer(i, reason)

        return RestartReport(i, RESTARTED, center=g)

    def skip_reason(self, i: int) -> Optional[str]:
        """None if cluster i is eligible for a restart."""
        ctx = self.ctx
        if ctx.poly.user_defined:
            return "user-defined polynomial"
        members = ctx.clusters.cluster(i)
        if len(members) == 1:
            return "singleton"

        if ctx.config.goal == "count":
            tags = (InclusionTag.UNKNOWN,)
        else:
            tags = (InclusionTag.UNKNOWN, InclusionTag.ISOLATED)

        for l in members:
            if not ctx.again[l]:
                return "member does not need iterating"
            if ctx.status[l] == RootStatus.CLUSTERED and ctx.tags[l] in tags:
                return None
        return "no member waiting for a restart"

    # --- stages ---

    def _check_width(self, sc, sr: mpmath.mpf) -> Optional[str]:
        if sr > self.domain.modulus(sc):
            return "cluster relatively large"
        return None

    def _check_isolation(self, i: int, sc, sr: mpmath.mpf) -> Optional[str]:
        ctx = self.ctx
        domain = self.domain
        foreign = [l for k, group in enumerate(ctx.clusters.groups()) if k != i for l in group]

        with domain.working():
            if self.domain_name == "mp":
                total = mpmath.mpf(0)
                for l in foreign:
                    gap = domain.modulus(sc - self.roots[l]) - self.radii[l] - sr
                    if gap <= 0:
                        return "cluster not Newton isolated"
                    total += 1 / gap
                if sr * total > MP_ISOLATION_THRESHOLD:
                    return "cluster not Newton isolated"
            else:
                factor = ISOLATION_FACTORS[self.domain_name] * ctx.n
                for l in foreign:
                    if domain.modulus(sc - self.roots[l]) < (sr + self.radii[l]) * factor:
                        return "cluster not Newton isolated"
        return None

    def _refine_center(self, i: int, coefficients, sc, sr: mpmath.mpf) -> Tuple[object, Optional[str]]:
        """Zero of the (m-1)-th derivative of p, found by Newton from sc."""
        ctx = self.ctx
        domain = self.domain
        m = ctx.clusters.size(i)

        with domain.working():
            derivative = derivative_coefficients(coefficients, m - 1)
            derivative_moduli = [domain.modulus(c) for c in derivative]

        g = sc
        converged = False
        steps = 0
        while steps < ctx.config.max_newton_iterations:
            step = newton_correction(domain, derivative, derivative_moduli, g)
            with domain.working():
                g = g - step.correction
            steps += 1
            if not step.again:
                converged = True
                break
        if not converged:
            return g, "exceeded maximum Newton iterations"
        ctx.log(f"Restart: cluster {i}, center after {steps} Newton steps: {self._fmt(g)}")

        with domain.working():
            if domain.modulus(sc - g) > sr:
                return g, "the gravity center falls outside the cluster"
            if g == 0:
                return g, "the gravity center is the origin"
        return g, None

    def _shift(self, i: int, coefficients, moduli, g) -> Tuple[Optional[ShiftResult], Optional[str]]:
        ctx = self.ctx
        domain = self.domain
        m = ctx.clusters.size(i)

        if self.domain_name == "float":
            # |p(x+g)| is of the order of sum |a_j| |g|^n
            growth = (ctx.n * mpmath.log(domain.modulus(g))
                      + mpmath.log(ctx.poly.coefficient_sum(domain)))
            if growth > mpmath.log(DBL_MAX):
                return None, "shift may overflow"

        if self.domain_name == "mp":
            plan = compute_shift_precision_plan(
                domain.precision, ctx.config.output_precision, m)
            shifted = adaptive_shift(domain, ctx.poly.coefficients, moduli, g, m, plan,
                                     log=ctx.log)
        else:
            shifted = shift_polynomial(domain, coefficients, g, m)
        return shifted, None

    def _reseed(self, i: int, shifted: ShiftResult, g, sr: mpmath.mpf) -> Optional[str]:
        """New approximations for the cluster, translated back by g."""
        ctx = self.ctx
        domain = self.domain
        members = ctx.clusters.cluster(i)
        m = len(members)
        ag = domain.modulus(g)

        snapshot = self._snapshot(members)
        last_sigma = ctx.last_sigma
        plan = place_starting_points(
            ctx, self.domain_name, shifted.moduli, i_clust=i, clust_rad=sr,
            g=ag, eps=ctx.config.output_tolerance)

        if self.domain_name == "mp" and not plan.radii[-1] < sr * MP_SHRINK_FACTOR:
            self._restore(members, snapshot)
            ctx.last_sigma = last_sigma
            return "new radius of the cluster is larger"

        floor = 2 * domain.epsilon * ag
        with domain.working():
            for l in members:
                y = self.roots[l]
                self.radii[l] = max(2 * m * domain.modulus(y), floor)
                self.roots[l] = y + g
        return None

    # --- helpers ---

    def _defer(self, i: int, reason: str) -> RestartReport:
        for l in self.ctx.clusters.cluster(i):
            self.ctx.status[l] = RootStatus.CLUSTERED
        self.ctx.log(f"Restart ({self.domain_name}): cluster {i}: {reason}")
        return RestartReport(i, DEFERRED, reason)

    def _snapshot(self, members: List[int]) -> List[Tuple[object, mpmath.mpf, RootStatus]]:
        return [(self.roots[l], self.radii[l], self.ctx.status[l]) for l in members]

    def _restore(self, members: List[int], snapshot):
        for l, (root, rad, status) in zip(members, snapshot):
            self.roots[l] = root
            self.radii[l] = rad
            self.ctx.status[l] = status

    def _fmt(self, z) -> str:
        if self.domain_name == "float":
            z = mpmath.mpc(complex(z))
        return mpmath.nstr(z, 8)
