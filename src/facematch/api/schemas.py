"""Pydantic request/response schemas for the FaceMatch API."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field

FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]


class EnrolledStudent(BaseModel):
    """A gallery entry: student attributes plus reference descriptors."""

    id: str
    name: str
    roll_no: str = ""
    email: str = ""
    descriptors: list[list[FiniteFloat]] = Field(
        default_factory=list,
        description="Reference face descriptors; students without any are skipped",
    )


class RecognizeRequest(BaseModel):
    """Gallery snapshot and probe descriptors for one recognition request."""

    gallery: list[EnrolledStudent]
    probes: list[list[FiniteFloat]] = Field(description="Descriptors detected in the current frame")
    threshold: float | None = Field(
        default=None,
        ge=0.0,
        allow_inf_nan=False,
        description="Exclusive maximum distance; defaults to the configured threshold",
    )


class StudentInfo(BaseModel):
    """Public attributes of a matched student."""

    id: str
    name: str
    roll_no: str
    email: str


class FaceMatch(BaseModel):
    """Best match for one probe."""

    probe_index: int = Field(ge=0)
    student: StudentInfo
    confidence: float = Field(description="1 - distance, not clamped")
    distance: float = Field(ge=0.0)


class RecognizeResponse(BaseModel):
    """Per-probe results (null when unmatched) and the compacted match list."""

    results: list[FaceMatch | None]
    matches: list[FaceMatch]


class DistanceRequest(BaseModel):
    """Two descriptors to compare."""

    a: list[FiniteFloat]
    b: list[FiniteFloat]


class DistanceResponse(BaseModel):
    distance: float


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    concurrent_requests: int
    queue_depth: int
    match_threshold: float


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
