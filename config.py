"""
Certified root solver configuration.
All refinement parameters are centralized here.
"""

from dataclasses import dataclass
from typing import Optional
from pathlib import Path

import mpmath

GOALS = ("count", "isolate", "approximate")


@dataclass
class SolverConfig:
    """Parameters consumed by the planner, the placer and the restart engine."""

    # === GOAL ===
    # "count"       = only count the roots in each cluster
    # "isolate"     = separate every root from the others
    # "approximate" = isolate and then refine up to output_precision
    # The restart engine uses the goal to decide which clusters are eligible.
    goal: str = "approximate"

    # === STARTING POINTS ===
    # If True the rotation of each new set of starting points is drawn at
    # random; otherwise it is chosen to maximize the angular distance from the
    # previous cluster's points.
    random_seed: bool = False
    seed: Optional[int] = None  # only used when random_seed is True

    # Adjacent annuli whose radii differ (relatively) by at most this amount
    # are merged into a single annulus.
    circle_relative_distance: float = 0.1

    # === RESTART ===
    # Newton steps on the (m-1)-th derivative before a cluster restart is
    # given up and deferred to a later pass.
    max_newton_iterations: int = 20

    # === PRECISION (bits) ===
    # Working precision of the arbitrary precision domain. The adaptive shift
    # may raise it temporarily up to 2 * output_precision * multiplicity.
    working_precision: int = 128
    output_precision: int = 64

    # Relative radius below which a re-seeded cluster is considered converged.
    # Derived from output_precision when not given.
    output_tolerance: Optional[mpmath.mpf] = None

    # === DIAGNOSTICS ===
    verbose: bool = False
    log_dir: Optional[Path] = None

    def __post_init__(self):
        if self.goal not in GOALS:
            raise ValueError(f"Unknown goal: {self.goal}")
        if self.circle_relative_distance <= 0:
            raise ValueError("circle_relative_distance must be positive")
        if self.max_newton_iterations < 0:
            raise ValueError("max_newton_iterations must be non-negative")
        if self.working_precision < 2 or self.output_precision < 2:
            raise ValueError("precisions must be at least 2 bits")

        if self.output_tolerance is None:
            self.output_tolerance = mpmath.ldexp(mpmath.mpf(1), 1 - self.output_precision)
        else:
            self.output_tolerance = mpmath.mpf(self.output_tolerance)

        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir)
            self.log_dir.mkdir(parents=True, exist_ok=True)
