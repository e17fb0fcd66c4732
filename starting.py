"""
Starting approximations for the roots of a polynomial (or of a cluster).

PLANNER (compute_starting_radii):
1. Take log|a_i| for every coefficient, replacing log(0) with a small
   placeholder that depends on the domain and on the shift modulus g
2. Compute the Newton polygon (upper hull of (i, log|a_i|))
3. Every hull edge i_old -> i carries i - i_old roots on a circle of radius
   exp((log|a_i_old| - log|a_i|) / (i - i_old)), clamped to the representable
   range of the domain and to the cluster radius
4. Sweep the circles left to right and merge the ones whose radii are
   relatively closer than circle_relative_distance

PLACER (place_starting_points):
The roots of each annulus are equally spaced, rotated by an offset that
depends on the position of the annulus and by a global rotation sigma. For
every cluster after the first, sigma is advanced so that the new points fall
as far as possible from those of the previous cluster.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import mpmath

from convex import newton_polygon
from numeric_domains import NumericDomain
from solver_context import RootStatus, SolverContext

TWO_PI = 2 * math.pi


@dataclass
class StartingRadii:
    """
    Annuli where the starting points are placed.

    Annulus i holds the roots partitioning[i] .. partitioning[i+1]-1 on a
    circle of radius radii[i]. partitioning[0] == 0 and partitioning[-1] == n.
    """
    partitioning: List[int]
    radii: List[mpmath.mpf]

    def __len__(self) -> int:
        return len(self.radii)

    def size(self, i: int) -> int:
        return self.partitioning[i + 1] - self.partitioning[i]

    @property
    def degree(self) -> int:
        return self.partitioning[-1]


def _log_moduli(domain: NumericDomain, moduli: Sequence[mpmath.mpf],
                g: mpmath.mpf) -> List[float]:
    placeholder = domain.zero_log_placeholder(moduli, g)
    return [float(mpmath.log(a)) if a != 0 else placeholder for a in moduli]


def compute_starting_radii(
    ctx: SolverContext,
    domain: NumericDomain,
    moduli: Sequence[mpmath.mpf],
    i_clust: int = 0,
    clust_rad: mpmath.mpf = mpmath.mpf(0),
    g: mpmath.mpf = mpmath.mpf(0),
) -> StartingRadii:
    """
    Radii of the circles holding the starting approximations.

    Args:
        ctx: solver context (tolerance and log sink)
        domain: numeric domain the radii must be representable in
        moduli: |a_0|, ..., |a_n| of the (possibly shifted) polynomial
        i_clust: index of the cluster being analyzed
        clust_rad: radius of the cluster; 0 means no bound
        g: modulus of the point the polynomial was shifted to (0 if none)

    Returns:
        StartingRadii covering the indices 0..n
    """
    n = len(moduli) - 1
    log_moduli = _log_moduli(domain, moduli, g)
    hull = newton_polygon(log_moduli)

    partitioning = [0]
    radii: List[mpmath.mpf] = []
    for i in range(1, n + 1):
        if not hull[i]:
            continue
        iold = partitioning[-1]
        nzeros = i - iold
        r = domain.clamp_log_radius((log_moduli[iold] - log_moduli[i]) / nzeros)
        if clust_rad != 0 and r > clust_rad:
            r = clust_rad
        radii.append(r)
        partitioning.append(i)

    return _compact(ctx, i_clust, StartingRadii(partitioning, radii))


def _compact(ctx: SolverContext, i_clust: int, plan: StartingRadii) -> StartingRadii:
    """Merge adjacent circles whose radii are relatively close."""
    tol = ctx.config.circle_relative_distance
    partitioning = [0]
    radii: List[mpmath.mpf] = []

    group: List[mpmath.mpf] = []
    first = 0
    for i, r in enumerate(plan.radii):
        if group:
            mean = mpmath.fsum(group) / len(group)
            if (r - mean) / mean > tol:
                radii.append(mean)
                partitioning.append(plan.partitioning[i])
                if len(group) > 1:
                    ctx.log(f"Cluster {i_clust}: compacting circles from {first} to {i}")
                group = []
                first = i
        group.append(r)

    if len(group) > 1:
        ctx.log(f"Cluster {i_clust}: compacting circles from {first} to {len(plan.radii)}")
    radii.append(mpmath.fsum(group) / len(group))
    partitioning.append(plan.partitioning[-1])
    return StartingRadii(partitioning, radii)


def maximize_distance(ctx: SolverContext, last_sigma: float, i_clust: int, n: int) -> float:
    """
    Rotation for the starting points of cluster i_clust.

    The shift pi * m_prev * gcd(m_prev, n) / (4 n), where m_prev is the size
    of the previous cluster, keeps the new points away from the previous
    ones. The result is stored in ctx.last_sigma.
    """
    old_clust_n = ctx.clusters.size(i_clust - 1)
    delta_sigma = math.pi * (old_clust_n * math.gcd(old_clust_n, n)) / (4 * n)
    ctx.last_sigma = last_sigma + delta_sigma
    return ctx.last_sigma


def _rotation(ctx: SolverContext, i_clust: int, n: int) -> float:
    if ctx.config.random_seed:
        return float(ctx.rng.random())
    if i_clust == 0:
        ctx.last_sigma = 0.0
        return 0.0
    return maximize_distance(ctx, ctx.last_sigma, i_clust, n)


def place_starting_points(
    ctx: SolverContext,
    domain_name: str,
    moduli: Sequence[mpmath.mpf],
    i_clust: int = 0,
    clust_rad: mpmath.mpf = mpmath.mpf(0),
    g: mpmath.mpf = mpmath.mpf(0),
    eps: Optional[mpmath.mpf] = None,
    only_unrepresentable: bool = False,
) -> Optional[StartingRadii]:
    """
    Write starting approximations into ctx.roots[domain_name].

    When g is nonzero the polynomial has been shifted to the center of
    cluster i_clust and the points are assigned to the members of that
    cluster; otherwise they are assigned to the roots 0..n-1.

    Args:
        ctx: solver context, updated in place
        domain_name: "float", "dpe" or "mp"
        moduli: |a_0|, ..., |a_n| of the (possibly shifted) polynomial
        i_clust: index of the cluster being analyzed
        clust_rad: radius of the cluster; 0 means no bound
        g: modulus of the shift point
        eps: relative radius under which the cluster is output; defaults
            to the configured output tolerance
        only_unrepresentable: recompute only the roots currently marked
            UNREPRESENTABLE (used when moving to a wider domain)

    Returns:
        The annuli used, or None for user-defined polynomials.
    """
    domain = ctx.domain(domain_name)
    roots = ctx.roots[domain_name]
    radii = ctx.radii[domain_name]
    n = len(moduli) - 1
    g = mpmath.mpf(g)
    if eps is None:
        eps = ctx.config.output_tolerance

    members = ctx.clusters.cluster(i_clust) if g != 0 else list(range(n))
    sigma = _rotation(ctx, i_clust, n)

    if ctx.poly.user_defined:
        ang = TWO_PI / n
        for i in range(n):
            roots[members[i]] = domain.polar(mpmath.mpf(1), ang * i + sigma)
        return None

    plan = compute_starting_radii(ctx, domain, moduli, i_clust, clust_rad, g)
    th = TWO_PI / n

    for i in range(len(plan)):
        start, end = plan.partitioning[i], plan.partitioning[i + 1]
        nzeros = end - start
        ang = TWO_PI / nzeros
        r = plan.radii[i]
        extreme = domain.is_extreme(r)

        for j in range(start, end):
            l = members[j]
            if only_unrepresentable and ctx.status[l] != RootStatus.UNREPRESENTABLE:
                continue
            jj = j - start
            roots[l] = domain.polar(r, ang * jj + th * end + sigma)
            if extreme:
                ctx.status[l] = RootStatus.UNREPRESENTABLE
            elif only_unrepresentable:
                ctx.status[l] = RootStatus.CLUSTERED

        if extreme:
            ctx.log(f"Cluster {i_clust}: {nzeros} zeros out of the {domain.name} range "
                    f"(radius {mpmath.nstr(r, 5)})")

        # a relatively small cluster is considered converged
        if g != 0 and r * nzeros < eps * g:
            for l in ctx.clusters.cluster(i_clust):
                ctx.status[l] = RootStatus.OUTPUT
                radii[l] = r * nzeros

    return plan
