"""Gallery value types and the per-call flattened search index.

The gallery is a snapshot supplied by the caller on every match call. Nothing
here is cached between calls and nothing mutates the caller's identities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from numpy.typing import NDArray

Descriptor = tuple[float, ...]


class InvalidInputError(ValueError):
    """Two descriptors of different dimensionality were about to be compared.

    Raised for the whole match call; a partial result is never returned.
    """

    def __init__(
        self,
        message: str,
        *,
        probe_index: int | None = None,
        identity_key: str | None = None,
        descriptor_index: int | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        super().__init__(message)
        self.probe_index = probe_index
        self.identity_key = identity_key
        self.descriptor_index = descriptor_index
        self.expected = expected
        self.actual = actual


def as_descriptor(values: Iterable[float]) -> Descriptor:
    """Freeze a sequence of numbers into a Descriptor tuple."""
    return tuple(float(v) for v in values)


def row_distances(matrix: NDArray[np.float64], probe: NDArray[np.float64]) -> NDArray[np.float64]:
    """Euclidean distance from ``probe`` to each row of ``matrix``.

    All distances in the package are computed here; a pair yields the same
    float whichever entry point asked for it.
    """
    diff = matrix - probe
    return np.sqrt(np.sum(diff * diff, axis=1))


@dataclass(frozen=True)
class EnrolledIdentity:
    """An enrolled person and their reference descriptors.

    ``code`` is the secondary human-readable identifier (roll number) and
    ``contact`` the contact attribute (e-mail). Identities without descriptors
    are ignored by the matcher.
    """

    key: str
    name: str
    code: str = ""
    contact: str = ""
    descriptors: tuple[Descriptor, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptors", tuple(as_descriptor(d) for d in self.descriptors))

    @property
    def eligible(self) -> bool:
        return len(self.descriptors) > 0


@dataclass(frozen=True)
class MatchResult:
    """Winning gallery entry for a single probe."""

    key: str
    name: str
    code: str
    contact: str
    distance: float

    @property
    def confidence(self) -> float:
        """``1 - distance``, deliberately not clamped to [0, 1]."""
        return 1.0 - self.distance

    @classmethod
    def for_identity(cls, identity: EnrolledIdentity, distance: float) -> MatchResult:
        return cls(
            key=identity.key,
            name=identity.name,
            code=identity.code,
            contact=identity.contact,
            distance=distance,
        )


@dataclass(frozen=True, eq=False)
class GalleryIndex:
    """Eligible gallery descriptors flattened into rows, in scan order.

    Row order is identity order, then descriptor order within the identity,
    so the first row holding the minimum distance is the first-encountered
    candidate of a sequential scan.
    """

    identities: tuple[EnrolledIdentity, ...]
    owners: NDArray[np.intp]
    ordinals: NDArray[np.intp]
    dims: NDArray[np.intp]
    matrix: NDArray[np.float64] | None

    @classmethod
    def build(cls, gallery: Sequence[EnrolledIdentity]) -> GalleryIndex:
        identities = tuple(identity for identity in gallery if identity.eligible)

        rows: list[NDArray[np.float64]] = []
        owners: list[int] = []
        ordinals: list[int] = []
        for owner, identity in enumerate(identities):
            for ordinal, descriptor in enumerate(identity.descriptors):
                rows.append(np.asarray(descriptor, dtype=np.float64))
                owners.append(owner)
                ordinals.append(ordinal)

        dims = np.array([row.shape[0] for row in rows], dtype=np.intp)

        # Mixed dimensionality can never be compared against a single probe,
        # so the dense matrix only exists for uniform galleries.
        matrix: NDArray[np.float64] | None = None
        if rows and bool(np.all(dims == dims[0])):
            matrix = np.vstack(rows)

        return cls(
            identities=identities,
            owners=np.array(owners, dtype=np.intp),
            ordinals=np.array(ordinals, dtype=np.intp),
            dims=dims,
            matrix=matrix,
        )

    def __len__(self) -> int:
        return int(self.dims.shape[0])

    def check_dimension(self, probe_index: int, dim: int) -> None:
        """Raise InvalidInputError for the first row whose length differs from ``dim``."""
        mismatched = np.flatnonzero(self.dims != dim)
        if mismatched.size == 0:
            return
        row = int(mismatched[0])
        identity = self.identities[int(self.owners[row])]
        ordinal = int(self.ordinals[row])
        expected = int(self.dims[row])
        raise InvalidInputError(
            f"Probe {probe_index} has {dim} dimensions but descriptor {ordinal} "
            f"of identity {identity.key!r} has {expected}",
            probe_index=probe_index,
            identity_key=identity.key,
            descriptor_index=ordinal,
            expected=expected,
            actual=dim,
        )

    def distances(self, probe: NDArray[np.float64]) -> NDArray[np.float64]:
        """Euclidean distance from ``probe`` to every row, in row order.

        The caller must have validated the probe with :meth:`check_dimension`.
        """
        if self.matrix is None:
            return np.empty((0,), dtype=np.float64)
        return row_distances(self.matrix, probe)

    def owner_of(self, row: int) -> EnrolledIdentity:
        return self.identities[int(self.owners[row])]
