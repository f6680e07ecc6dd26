"""
Dynamic Time Warping for GyroLock.

Scores how far apart two point sequences are after the best monotonic
alignment between them. Points may have any dimension; motion segments
use (value, index) pairs so that timing differences cost too.
"""

import numpy as np
from scipy.spatial.distance import cdist

from .segmentation import MotionSegment


# Returned when either side has no points, so an empty segment can
# never pass a threshold.
EMPTY_SEQUENCE_DISTANCE = float("inf")


def as_points(seq) -> np.ndarray:
    """
    Coerce a segment or array to an (n, d) float array.

    1-D input is treated as n points of dimension 1.
    """
    if isinstance(seq, MotionSegment):
        return seq.points
    arr = np.asarray(seq, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"expected a 1-D or 2-D sequence, got shape {arr.shape}")
    return arr


def dtw_distance(a, b) -> float:
    """
    DTW distance between two sequences, distance only.

    D[i][j] = |a_i - b_j| + min(D[i-1][j], D[i][j-1], D[i-1][j-1])
    with D[0][0] = 0 and the rest of row/column 0 at infinity.
    Two rolling rows sized by the shorter sequence are kept.

    Args:
        a: MotionSegment or (m, d) array
        b: MotionSegment or (n, d) array

    Returns:
        D[m][n], or EMPTY_SEQUENCE_DISTANCE if either side is empty
    """
    pa = as_points(a)
    pb = as_points(b)

    if len(pa) == 0 or len(pb) == 0:
        return EMPTY_SEQUENCE_DISTANCE

    if pa.shape[1] != pb.shape[1]:
        raise ValueError(
            f"point dimensions differ: {pa.shape[1]} vs {pb.shape[1]}"
        )

    # Cost is symmetric, so iterate over the longer one
    if len(pb) > len(pa):
        pa, pb = pb, pa

    n = len(pb)
    prev = np.full(n + 1, np.inf)
    prev[0] = 0.0

    for point in pa:
        cost = np.sqrt(np.sum((pb - point) ** 2, axis=1))
        curr = np.empty(n + 1)
        curr[0] = np.inf
        for j in range(1, n + 1):
            curr[j] = cost[j - 1] + min(prev[j], curr[j - 1], prev[j - 1])
        prev = curr

    return float(prev[n])


def cost_matrix(a, b) -> np.ndarray:
    """Pairwise Euclidean cost between every point of a and b, shape (m, n)."""
    return cdist(as_points(a), as_points(b), metric="euclidean")


def accumulated_cost(a, b) -> np.ndarray:
    """
    Full (m+1, n+1) cumulative cost table.

    Only used for plotting; dtw_distance() is the scoring path.
    """
    local = cost_matrix(a, b)
    m, n = local.shape
    table = np.full((m + 1, n + 1), np.inf)
    table[0, 0] = 0.0
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            table[i, j] = local[i - 1, j - 1] + min(
                table[i - 1, j], table[i, j - 1], table[i - 1, j - 1]
            )
    return table
