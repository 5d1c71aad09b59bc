"""Exact nearest-neighbor matching of probe descriptors against a gallery.

For each probe the globally closest (identity, descriptor) pair is selected by
Euclidean distance. Ties go to the first pair in gallery order. A winner is
reported only when its distance is strictly below the threshold.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

import numpy as np

from facematch.matching.gallery import (
    EnrolledIdentity,
    GalleryIndex,
    InvalidInputError,
    MatchResult,
    as_descriptor,
    row_distances,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from concurrent.futures import Executor

    from numpy.typing import NDArray

__all__ = [
    "DEFAULT_THRESHOLD",
    "EnrolledIdentity",
    "InvalidInputError",
    "MatchResult",
    "euclidean_distance",
    "match",
]

DEFAULT_THRESHOLD: float = 0.6


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``sqrt(sum((a_i - b_i) ** 2))``.

    Raises:
        InvalidInputError: If the vectors differ in length.
    """
    va = np.asarray(as_descriptor(a), dtype=np.float64)
    vb = np.asarray(as_descriptor(b), dtype=np.float64)
    if va.shape[0] != vb.shape[0]:
        raise InvalidInputError(
            f"Cannot compare descriptors of length {va.shape[0]} and {vb.shape[0]}",
            expected=int(va.shape[0]),
            actual=int(vb.shape[0]),
        )
    return float(row_distances(vb.reshape(1, -1), va)[0])


def _best_match(index: GalleryIndex, probe: NDArray[np.float64], threshold: float) -> MatchResult | None:
    if len(index) == 0:
        return None
    # NaN rows never win; argmin then returns the first minimum, which is the
    # sequential scan's tie-break.
    distances = index.distances(probe)
    distances = np.where(np.isnan(distances), np.inf, distances)
    row = int(np.argmin(distances))
    best = float(distances[row])
    if best < threshold:
        return MatchResult.for_identity(index.owner_of(row), best)
    return None


def match(
    gallery: Sequence[EnrolledIdentity],
    probes: Sequence[Sequence[float]],
    threshold: float = DEFAULT_THRESHOLD,
    executor: Executor | None = None,
) -> list[MatchResult | None]:
    """Match every probe against the gallery snapshot.

    Args:
        gallery: Enrolled identities; those without descriptors are skipped.
        probes: Probe descriptors from one recognition request.
        threshold: Exclusive upper bound on the winning distance.
        executor: Optional executor used to scan probes in parallel. Results
            keep probe order and each probe is scanned sequentially.

    Returns:
        One entry per probe, in input order: the winning match or ``None``.

    Raises:
        InvalidInputError: If any probe differs in length from any gallery
            descriptor. No partial result is returned.
    """
    vectors = [np.asarray(as_descriptor(p), dtype=np.float64) for p in probes]
    if not vectors:
        return []

    index = GalleryIndex.build(gallery)
    for probe_index, vector in enumerate(vectors):
        index.check_dimension(probe_index, int(vector.shape[0]))

    scan = partial(_best_match, index, threshold=threshold)
    if executor is None:
        return [scan(vector) for vector in vectors]
    return list(executor.map(scan, vectors))
