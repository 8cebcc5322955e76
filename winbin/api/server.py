from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, HTTPException, Query

from .schemas import (
    CandidateModel,
    ClassificationResponse,
    ClassifyRequest,
    CreateSessionRequest,
    FrameRequest,
    ItemHistoryResponse,
    RecycledItemModel,
    SessionResponse,
)
from .service import ScanService
from ..ai import Classifier, ServiceError, StaticBottleClassifier
from ..ledger.storage import FileSystemLedger
from ..scan.controller import ScanController
from ..scan.errors import InvalidTransitionError, ScanBusyError, SessionNotFoundError


logger = logging.getLogger(__name__)

_MAX_HISTORY_LIMIT = 200


def create_app(
    ledger_root: Path | None = None,
    classifier: Classifier | None = None,
    ttl_minutes: float = 30.0,
    max_sessions: int = 1000,
    max_image_edge: int = 0,
) -> FastAPI:
    ledger = FileSystemLedger(root=ledger_root or Path("data/ledger"))
    selected_classifier = classifier or StaticBottleClassifier()
    service = ScanService(
        classifier=selected_classifier,
        ledger=ledger,
        ttl_minutes=ttl_minutes,
        max_sessions=max_sessions,
        max_image_edge=max_image_edge,
    )

    app = FastAPI(title="Win-Bin Scan API", version="0.1.0")
    app.state.classifier = selected_classifier
    app.state.service = service
    app.state.ledger = ledger

    logger.info(
        "API server initialised classifier=%s ledger_root=%s ttl_minutes=%.1f max_sessions=%d max_image_edge=%d",
        selected_classifier.__class__.__name__,
        ledger.root,
        ttl_minutes,
        max_sessions,
        max_image_edge,
    )

    def _session_response(controller: ScanController) -> SessionResponse:
        view = service.view(controller)
        return SessionResponse(
            session_id=controller.session_id,
            phase=view.phase,
            instruction=view.instruction,
            status=view.status,
            detected_label=view.detected_label,
            error=view.error,
            error_kind=view.error_kind,
            busy=view.busy,
            can_scan=view.can_scan,
            can_confirm=view.can_confirm,
            can_reset=view.can_reset,
        )

    async def _trigger(
        action: Callable[[str, str], Awaitable[ScanController]],
        session_id: str,
        payload: FrameRequest,
    ) -> SessionResponse:
        try:
            controller = await action(session_id, payload.image_base64)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except (ScanBusyError, InvalidTransitionError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        response = _session_response(controller)
        logger.info(
            "Scan trigger handled session=%s phase=%s error_kind=%s",
            session_id,
            response.phase,
            response.error_kind,
        )
        return response

    @app.get("/health", response_model=dict[str, str])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/sessions", response_model=SessionResponse, status_code=201)
    def create_session(payload: Optional[CreateSessionRequest] = None) -> SessionResponse:
        owner = payload.owner.strip() if payload and payload.owner else None
        controller = service.create_session(owner=owner or None)
        return _session_response(controller)

    @app.get("/v1/sessions/{session_id}", response_model=SessionResponse)
    def fetch_session(session_id: str) -> SessionResponse:
        try:
            return _session_response(service.get(session_id))
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/v1/sessions/{session_id}/identify", response_model=SessionResponse)
    async def identify(session_id: str, payload: FrameRequest) -> SessionResponse:
        return await _trigger(service.identify, session_id, payload)

    @app.post("/v1/sessions/{session_id}/confirm", response_model=SessionResponse)
    async def confirm(session_id: str, payload: FrameRequest) -> SessionResponse:
        return await _trigger(service.confirm, session_id, payload)

    @app.post("/v1/sessions/{session_id}/reset", response_model=SessionResponse)
    def reset(session_id: str) -> SessionResponse:
        try:
            return _session_response(service.reset(session_id))
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.delete("/v1/sessions/{session_id}", status_code=204)
    def close_session(session_id: str) -> None:
        try:
            service.close(session_id)
        except SessionNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/v1/classify", response_model=ClassificationResponse)
    async def classify(payload: ClassifyRequest) -> ClassificationResponse:
        try:
            result = await asyncio.to_thread(
                service.classify_once, payload.image_base64, payload.step
            )
        except ServiceError as exc:
            logger.warning("Direct classification failed step=%s: %s", payload.step, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ClassificationResponse(
            step=payload.step,
            candidateTypes=[CandidateModel(label=c.label) for c in result.candidate_types],
            isTargetObject=result.is_target_object,
            isDepositConfirmed=result.is_deposit_confirmed,
        )

    @app.get("/v1/items", response_model=ItemHistoryResponse)
    def list_items(
        owner: Optional[str] = None,
        limit: int = Query(default=50, ge=1, le=_MAX_HISTORY_LIMIT),
    ) -> ItemHistoryResponse:
        records = ledger.list_items(limit=limit, owner=owner)
        return ItemHistoryResponse(
            count=ledger.count(owner=owner),
            items=[
                RecycledItemModel(
                    record_id=record.record_id,
                    label=record.label,
                    recorded_at=record.recorded_at,
                    owner=record.owner,
                )
                for record in records
            ],
        )

    return app


__all__ = ["create_app"]
