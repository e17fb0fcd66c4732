"""
Cluster partition of the root indices and super-disks of clusters.

The partition is stored the way the restart engine scans it: a permutation
array listing the root indices grouped by cluster, and a monotone offsets
array delimiting the groups, so that cluster i is

    members[offsets[i]:offsets[i + 1]]
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import mpmath

from numeric_domains import NumericDomain


@dataclass
class ClusterPartition:
    """Disjoint contiguous groups covering the indices 0..n-1."""
    offsets: List[int]
    members: List[int]

    def __post_init__(self):
        n = len(self.members)
        if not self.offsets or self.offsets[0] != 0 or self.offsets[-1] != n:
            raise ValueError("Offsets must start at 0 and end at the number of roots")
        if any(b <= a for a, b in zip(self.offsets, self.offsets[1:])):
            raise ValueError("Offsets must be strictly increasing")
        if sorted(self.members) != list(range(n)):
            raise ValueError("Every root index must appear exactly once")

    def __len__(self) -> int:
        return len(self.offsets) - 1

    @property
    def n_roots(self) -> int:
        return len(self.members)

    def size(self, i: int) -> int:
        return self.offsets[i + 1] - self.offsets[i]

    def cluster(self, i: int) -> List[int]:
        return self.members[self.offsets[i]:self.offsets[i + 1]]

    def groups(self) -> List[List[int]]:
        return [self.cluster(i) for i in range(len(self))]

    @classmethod
    def single(cls, n: int) -> "ClusterPartition":
        """All the roots in one cluster, in index order."""
        return cls(offsets=[0, n], members=list(range(n)))

    @classmethod
    def from_groups(cls, groups: Sequence[Sequence[int]]) -> "ClusterPartition":
        offsets = [0]
        members: List[int] = []
        for group in groups:
            members.extend(group)
            offsets.append(len(members))
        return cls(offsets=offsets, members=members)

    @classmethod
    def from_disks(
        cls,
        domain: NumericDomain,
        roots: Sequence,
        radii: Sequence[mpmath.mpf],
    ) -> "ClusterPartition":
        """
        Group together the roots whose inclusion disks overlap.

        Two disks belong to the same cluster when they intersect or when they
        are chained by intersecting disks. Clusters are listed in order of
        their smallest index.
        """
        n = len(roots)
        parent = list(range(n))

        def find(i):
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        with domain.working():
            for i in range(n):
                for j in range(i + 1, n):
                    if domain.modulus(roots[i] - roots[j]) <= radii[i] + radii[j]:
                        ri, rj = find(i), find(j)
                        if ri != rj:
                            parent[max(ri, rj)] = min(ri, rj)

        by_root = {}
        for i in range(n):
            by_root.setdefault(find(i), []).append(i)
        return cls.from_groups([by_root[r] for r in sorted(by_root)])


def super_disk(
    domain: NumericDomain,
    roots: Sequence,
    radii: Sequence[mpmath.mpf],
    members: Sequence[int],
) -> Tuple[object, mpmath.mpf]:
    """
    Super center and super radius of a cluster.

    The super center is the mean of the approximations weighted by their
    inclusion radii (plain mean if all radii vanish); the super radius is the
    radius of the disk around it that contains every inclusion disk of the
    cluster.
    """
    with domain.working():
        total = mpmath.fsum(radii[l] for l in members)
        if total == 0:
            center = sum((roots[l] for l in members), domain.zero()) / len(members)
        else:
            weighted = sum((roots[l] * domain.real(radii[l]) for l in members), domain.zero())
            center = weighted / domain.real(total)

        radius = max(domain.modulus(center - roots[l]) + radii[l] for l in members)
    return center, radius
