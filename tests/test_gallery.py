"""Tests for gallery value types and the flattened index."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from facematch.matching.gallery import (
    EnrolledIdentity,
    GalleryIndex,
    InvalidInputError,
    MatchResult,
)


class TestEnrolledIdentity:
    def test_descriptors_are_frozen_to_tuples(self) -> None:
        source = [[1, 2], [3.5, 4]]
        identity = EnrolledIdentity(key="S1", name="Ada", descriptors=source)  # type: ignore[arg-type]

        source[0][0] = 99

        assert identity.descriptors == ((1.0, 2.0), (3.5, 4.0))
        assert all(isinstance(v, float) for d in identity.descriptors for v in d)

    def test_identity_is_immutable(self) -> None:
        identity = EnrolledIdentity(key="S1", name="Ada")
        with pytest.raises(dataclasses.FrozenInstanceError):
            identity.name = "Grace"  # type: ignore[misc]

    def test_eligibility(self) -> None:
        assert not EnrolledIdentity(key="S1", name="Ada").eligible
        assert EnrolledIdentity(key="S1", name="Ada", descriptors=((0.0,),)).eligible


class TestMatchResult:
    def test_confidence_is_one_minus_distance(self) -> None:
        identity = EnrolledIdentity(key="S1", name="Ada", code="R1", contact="ada@school.test")
        result = MatchResult.for_identity(identity, 0.25)
        assert result.key == "S1"
        assert result.code == "R1"
        assert result.contact == "ada@school.test"
        assert result.confidence == 0.75


class TestGalleryIndex:
    def test_rows_follow_identity_then_descriptor_order(self) -> None:
        gallery = [
            EnrolledIdentity(key="A", name="A", descriptors=((0.0, 0.0), (1.0, 1.0))),
            EnrolledIdentity(key="EMPTY", name="E"),
            EnrolledIdentity(key="B", name="B", descriptors=((2.0, 2.0),)),
        ]

        index = GalleryIndex.build(gallery)

        assert len(index) == 3
        assert [i.key for i in index.identities] == ["A", "B"]
        assert index.owners.tolist() == [0, 0, 1]
        assert index.ordinals.tolist() == [0, 1, 0]
        assert index.matrix is not None
        assert index.matrix.shape == (3, 2)
        assert index.owner_of(2).key == "B"

    def test_empty_gallery(self) -> None:
        index = GalleryIndex.build([])
        assert len(index) == 0
        assert index.matrix is None
        index.check_dimension(0, 128)

    def test_distances_in_row_order(self) -> None:
        gallery = [EnrolledIdentity(key="A", name="A", descriptors=((3.0, 4.0), (0.0, 1.0)))]
        index = GalleryIndex.build(gallery)
        distances = index.distances(np.zeros(2))
        assert distances.tolist() == [5.0, 1.0]

    def test_mixed_dimensions_have_no_matrix(self) -> None:
        gallery = [
            EnrolledIdentity(key="A", name="A", descriptors=((0.0, 0.0),)),
            EnrolledIdentity(key="B", name="B", descriptors=((0.0, 0.0, 0.0),)),
        ]
        index = GalleryIndex.build(gallery)
        assert index.matrix is None

        with pytest.raises(InvalidInputError, match="identity 'B'"):
            index.check_dimension(3, 2)

    def test_check_dimension_reports_first_mismatch(self) -> None:
        gallery = [
            EnrolledIdentity(key="A", name="A", descriptors=((0.0,) * 64, (0.0,) * 64)),
            EnrolledIdentity(key="B", name="B", descriptors=((0.0,) * 64,)),
        ]
        index = GalleryIndex.build(gallery)

        with pytest.raises(InvalidInputError) as exc_info:
            index.check_dimension(2, 128)

        err = exc_info.value
        assert (err.probe_index, err.identity_key, err.descriptor_index) == (2, "A", 0)
        assert (err.expected, err.actual) == (64, 128)
