"""API route definitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, status

from facematch.api.middleware import require_api_key
from facematch.api.schemas import (
    DistanceRequest,
    DistanceResponse,
    EnrolledStudent,
    ErrorResponse,
    FaceMatch,
    HealthResponse,
    RecognizeRequest,
    RecognizeResponse,
    StudentInfo,
)
from facematch.matching.gallery import EnrolledIdentity
from facematch.matching.matcher import euclidean_distance

if TYPE_CHECKING:
    from facematch.config import Settings
    from facematch.matching.gallery import MatchResult
    from facematch.matching.pool import MatchPool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(require_api_key)])


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_match_pool(request: Request) -> MatchPool:
    pool: MatchPool = request.app.state.match_pool
    return pool


def _to_identity(student: EnrolledStudent) -> EnrolledIdentity:
    return EnrolledIdentity(
        key=student.id,
        name=student.name,
        code=student.roll_no,
        contact=student.email,
        descriptors=tuple(tuple(d) for d in student.descriptors),
    )


def _to_face_match(probe_index: int, result: MatchResult) -> FaceMatch:
    return FaceMatch(
        probe_index=probe_index,
        student=StudentInfo(
            id=result.key,
            name=result.name,
            roll_no=result.code,
            email=result.contact,
        ),
        confidence=result.confidence,
        distance=result.distance,
    )


@router.post(
    "/recognize",
    response_model=RecognizeResponse,
    responses={
        422: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
    summary="Match detected face descriptors against a gallery",
)
async def recognize(body: RecognizeRequest, request: Request) -> RecognizeResponse:
    """Return the closest enrolled student for each probe, or null when none is close enough."""
    settings = _get_settings(request)
    pool = _get_match_pool(request)
    threshold = settings.match_threshold if body.threshold is None else body.threshold
    gallery = [_to_identity(student) for student in body.gallery if student.descriptors]

    results = await pool.match(gallery, body.probes, threshold)

    face_matches = [None if r is None else _to_face_match(i, r) for i, r in enumerate(results)]
    matches = [m for m in face_matches if m is not None]
    logger.debug(
        "Recognized %d of %d probes against %d students (threshold=%s)",
        len(matches),
        len(body.probes),
        len(gallery),
        threshold,
    )
    return RecognizeResponse(results=face_matches, matches=matches)


@router.post(
    "/distance",
    response_model=DistanceResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Euclidean distance between two descriptors",
)
async def distance(body: DistanceRequest) -> DistanceResponse:
    return DistanceResponse(distance=euclidean_distance(body.a, body.b))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    pool = _get_match_pool(request)
    return HealthResponse(
        status="ok",
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
        match_threshold=settings.match_threshold,
    )
