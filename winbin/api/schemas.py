from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    owner: Optional[str] = Field(
        default=None, max_length=128, description="Opaque identifier of the recycling user"
    )


class FrameRequest(BaseModel):
    image_base64: str = Field(
        ..., min_length=1, description="Base64 encoded still frame or data URI"
    )


class ClassifyRequest(FrameRequest):
    step: Literal["identify", "confirm"]


class SessionResponse(BaseModel):
    session_id: str
    phase: str
    instruction: str
    status: Optional[str] = None
    detected_label: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    busy: bool = False
    can_scan: bool
    can_confirm: bool
    can_reset: bool


class CandidateModel(BaseModel):
    label: str


class ClassificationResponse(BaseModel):
    step: str
    candidateTypes: List[CandidateModel] = Field(default_factory=list)
    isTargetObject: bool
    isDepositConfirmed: bool


class RecycledItemModel(BaseModel):
    record_id: str
    label: str
    recorded_at: datetime
    owner: Optional[str] = None


class ItemHistoryResponse(BaseModel):
    count: int
    items: List[RecycledItemModel]


__all__ = [
    "CandidateModel",
    "ClassificationResponse",
    "ClassifyRequest",
    "CreateSessionRequest",
    "FrameRequest",
    "ItemHistoryResponse",
    "RecycledItemModel",
    "SessionResponse",
]
