"""
Determinants of upper Hessenberg matrices.

Gaussian elimination only has to clear the subdiagonal, so the determinant
costs O(n^2) operations. Rows k and k+1 are swapped when the subdiagonal
entry is larger than the pivot.
"""

from typing import Sequence

from numeric_domains import NumericDomain


def hessenberg_determinant(domain: NumericDomain, matrix: Sequence[Sequence]):
    """Determinant of an upper Hessenberg matrix, computed in the domain."""
    n = len(matrix)
    with domain.working():
        h = [[domain.convert(v) for v in row] for row in matrix]
        det = domain.convert(1)
        for k in range(n - 1):
            if domain.modulus(h[k + 1][k]) > domain.modulus(h[k][k]):
                h[k], h[k + 1] = h[k + 1], h[k]
                det = -det
            if h[k][k] == 0:
                return domain.zero()
            factor = h[k + 1][k] / h[k][k]
            for j in range(k, n):
                h[k + 1][j] = h[k + 1][j] - factor * h[k][j]
            det = det * h[k][k]
        det = det * h[n - 1][n - 1]
    return det


def hessenberg_shifted_determinant(domain: NumericDomain, matrix: Sequence[Sequence], shift):
    """det(H - shift * I) for an upper Hessenberg matrix H."""
    n = len(matrix)
    with domain.working():
        s = domain.convert(shift)
        shifted = [[domain.convert(v) for v in row] for row in matrix]
        for i in range(n):
            shifted[i][i] = shifted[i][i] - s
    return hessenberg_determinant(domain, shifted)
