from fastapi import APIRouter, Depends, HTTPException, Query

from promotion_engine.api.schemas.history import HistoryEntryResponse, HistoryListResponse
from promotion_engine.container import get_history_store
from promotion_engine.core.errors import HistoryError
from promotion_engine.core.models import HistoryEntry

router = APIRouter(prefix="/history", tags=["history"])


def _to_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        revision_number=entry.revision_number,
        message=entry.message,
        timestamp=entry.timestamp,
    )


@router.get("/{cluster}/{service}", response_model=HistoryListResponse)
def list_history(
    cluster: str,
    service: str,
    limit: int = Query(default=20, ge=1, le=100),
    store=Depends(get_history_store),
):
    try:
        entries = store.list_entries(cluster, service, limit)
    except HistoryError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return HistoryListResponse(
        cluster=cluster,
        service=service,
        entries=[_to_response(entry) for entry in entries],
    )


@router.get("/{cluster}/{service}/latest", response_model=HistoryEntryResponse)
def latest_history(
    cluster: str,
    service: str,
    store=Depends(get_history_store),
):
    try:
        entry = store.latest(cluster, service)
    except HistoryError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not entry:
        raise HTTPException(status_code=404, detail="No history for service")

    return _to_response(entry)
