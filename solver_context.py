"""
State of one solve.

The context is created once per polynomial, passed explicitly to every
operation of the planner, the placer and the restart engine, and mutated in
place. It holds:

- the polynomial and its per-domain coefficients (cached by the polynomial),
- per-domain root approximations and inclusion radii (radii are always
  extended-exponent mpf numbers),
- status, sub-tag and "again" flag of every root, shared by the domains,
- the cluster partition, the rotation state of the placer and the log sink.
"""

import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import mpmath
import numpy as np

from cluster import ClusterPartition
from config import SolverConfig
from numeric_domains import NumericDomain, make_domains
from polynomial import MonomialPoly


class RootStatus(Enum):
    """Main status of a root approximation."""
    ISOLATED = "i"          # the inclusion disk contains exactly one root
    CLUSTERED = "c"         # still converging inside a cluster
    OUTPUT = "o"            # converged, ready for output
    UNREPRESENTABLE = "x"   # modulus out of the range of the active domain


class InclusionTag(Enum):
    """Auxiliary sub-tag: what is known about the inclusion disk."""
    UNKNOWN = "u"
    ISOLATED = "i"
    APPROXIMATED = "a"
    MULTIPLE = "m"


class SolverContext:
    """Mutable state shared by every component of the refinement engine."""

    def __init__(self, poly: MonomialPoly, config: Optional[SolverConfig] = None):
        self.config = config if config is not None else SolverConfig()
        self.poly = poly
        self.n = poly.degree
        self.domains: Dict[str, NumericDomain] = make_domains(self.config.working_precision)

        # === PER-ROOT STATE ===
        self.roots: Dict[str, list] = {}
        self.radii: Dict[str, List[mpmath.mpf]] = {}
        for name, domain in self.domains.items():
            zero = domain.zero()
            if name == "float":
                self.roots[name] = np.zeros(self.n, dtype=np.complex128)
            else:
                self.roots[name] = [zero] * self.n
            self.radii[name] = [mpmath.mpf(0)] * self.n

        self.status: List[RootStatus] = [RootStatus.CLUSTERED] * self.n
        self.tags: List[InclusionTag] = [InclusionTag.UNKNOWN] * self.n
        self.again: List[bool] = [True] * self.n

        # === CLUSTERS AND PLACEMENT ===
        self.clusters = ClusterPartition.single(self.n)
        self.last_sigma = 0.0
        self.rng = np.random.default_rng(self.config.seed)
        self.newton_isolated = False

        # === LOGGING ===
        self.log_file: Optional[Path] = None
        if self.config.log_dir is not None:
            self.log_file = self.config.log_dir / f"solve_{time.strftime('%Y%m%d_%H%M%S')}.log"

    def log(self, msg: str):
        """Log to file and console when verbose."""
        if not self.config.verbose:
            return
        timestamp = time.strftime("%H:%M:%S")
        line = f"[{timestamp}] {msg}"
        print(line, flush=True)
        if self.log_file is not None:
            with open(self.log_file, "a") as f:
                f.write(line + "\n")

    def domain(self, name: str) -> NumericDomain:
        if name not in self.domains:
            raise ValueError(f"Unknown numeric domain: {name}")
        return self.domains[name]

    def coefficients(self, domain: NumericDomain):
        """Coefficients of the polynomial in the domain and their moduli."""
        return self.poly.in_domain(domain)

    def raise_precision(self, bits: int):
        """Move the arbitrary precision domain to a new working precision."""
        domain = self.domains["mp"].rescale(bits)
        self.domains["mp"] = domain
        self.config.working_precision = bits
        with domain.working():
            self.roots["mp"] = [+mpmath.mpc(z) for z in self.roots["mp"]]
        self.log(f"Working precision set to {bits} bits")

    def set_clusters(self, partition: ClusterPartition):
        """Replace the cluster partition wholesale."""
        if partition.n_roots != self.n:
            raise ValueError(
                f"Partition covers {partition.n_roots} roots, expected {self.n}")
        self.clusters = partition

    def rebuild_clusters(self, domain_name: str):
        """Recompute the partition from the overlaps of the inclusion disks."""
        domain = self.domain(domain_name)
        self.clusters = ClusterPartition.from_disks(
            domain, self.roots[domain_name], self.radii[domain_name])
        self.log(f"Cluster analysis ({domain_name}): {len(self.clusters)} clusters")
