"""
Session Cache Router — /api/sessions

Thin HTTP surface over SessionDataManager. All logic lives in the manager;
these handlers translate results into status codes.

Endpoints:
    POST   /api/sessions/{session_id}/load          — (Re)load company data
    GET    /api/sessions/{session_id}/consolidated  — Consolidated view
    GET    /api/sessions/{session_id}/selection     — Current display selection
    PUT    /api/sessions/{session_id}/selection     — Change display selection
    GET    /api/sessions/{session_id}/status        — Freshness of cached data
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..exceptions import PersistFailed
from ..schemas import (
    ConsolidatedView, ConsolidationFailure, LoadSessionRequest, LoadSessionResponse,
    SelectionResponse, SelectionUpdate, SessionStatusResponse,
)
from ..session_manager import SessionDataManager, get_session_manager

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])

# NO_SELECTION: the user must pick companies; NO_LIVE_DATA: reload needed
_FAILURE_STATUS = {"NO_SELECTION": 409, "NO_LIVE_DATA": 404}


@router.post("/{session_id}/load", response_model=LoadSessionResponse)
async def load_session(
    session_id: str,
    data: LoadSessionRequest,
    manager: SessionDataManager = Depends(get_session_manager),
):
    """
    Load every requested company into the session cache in parallel.

    Companies that fail are reported in the response, not as an error.
    Returns 503 if the cache itself cannot be written.
    """
    try:
        return await manager.load_session(session_id, data.tenant_ids)
    except PersistFailed as exc:
        raise HTTPException(status_code=503, detail=exc.to_detail())


@router.get("/{session_id}/consolidated", response_model=ConsolidatedView)
async def get_consolidated(
    session_id: str,
    tenant_ids: Optional[str] = Query(
        None, description="Comma-separated tenant IDs; defaults to the stored selection"
    ),
    manager: SessionDataManager = Depends(get_session_manager),
):
    """
    Consolidate cached data for the selected companies.

    Returns 409 when nothing is selected and 404 when the session has no
    live data for the selection (never loaded or expired).
    """
    selected = None
    if tenant_ids is not None:
        selected = [tid.strip() for tid in tenant_ids.split(",") if tid.strip()]

    result = await manager.consolidate(session_id, selected)
    if isinstance(result, ConsolidationFailure):
        raise HTTPException(
            status_code=_FAILURE_STATUS.get(result.error_code, 400),
            detail={
                "detail": result.error,
                "error_code": result.error_code,
                "context": {"session_id": session_id},
            },
        )
    return result


@router.get("/{session_id}/selection", response_model=SelectionResponse)
async def get_selection(session_id: str, manager: SessionDataManager = Depends(get_session_manager)):
    """Current selection; an empty overview selection if none was ever set."""
    return await manager.get_selection(session_id)


@router.put("/{session_id}/selection", response_model=SelectionResponse)
async def set_selection(
    session_id: str,
    data: SelectionUpdate,
    manager: SessionDataManager = Depends(get_session_manager),
):
    """Replace the selected companies and active view."""
    try:
        return await manager.set_selection(session_id, data.selected_tenant_ids, data.current_view)
    except PersistFailed as exc:
        raise HTTPException(status_code=503, detail=exc.to_detail())


@router.get("/{session_id}/status", response_model=SessionStatusResponse)
async def get_status(session_id: str, manager: SessionDataManager = Depends(get_session_manager)):
    """Whether the session still has live cached data, and until when."""
    return await manager.has_valid_data(session_id)
