"""Offline sync route.

Replays a batch captured on a device while it was offline. Each entry is
stored independently and in submission order; a failing entry is reported
and never aborts the rest.
"""
import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends

from step_tracking.metrics import fill_derived
from step_tracking.models import ActivitySession, DailyStepRecord
from step_tracking.store import SQLiteStepStore
from step_tracking.sync_reconciler import SyncQueueEntry, SyncReconciler

from ..database import get_store
from ..models.sync import OfflineSyncRequest, OfflineSyncResponse, SyncResult

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["Sync"])


def _build_entries(body: OfflineSyncRequest) -> List[SyncQueueEntry]:
    entries = []

    for item in body.data.steps:
        record = DailyStepRecord(
            user_id=body.user_id,
            date=item.date,
            step_count=item.step_count,
            floors_climbed=item.floors_climbed,
            **fill_derived(item.step_count, item.distance, item.calories, item.active_minutes),
        )
        entries.append(SyncQueueEntry.for_record(record))

    for item in body.data.sessions:
        session = ActivitySession(
            session_id=item.session_id or uuid.uuid4().hex,
            user_id=body.user_id,
            **item.model_dump(exclude={"session_id"}),
        )
        entries.append(SyncQueueEntry.for_session(session))

    return entries


@router.post("/offline", response_model=OfflineSyncResponse)
async def sync_offline(
    body: OfflineSyncRequest,
    store: SQLiteStepStore = Depends(get_store),
):
    """Store every entry of an offline batch and report per-entry results."""
    entries = _build_entries(body)
    log.info(f"[API] Offline sync for {body.user_id}: {len(entries)} entries")

    result = await SyncReconciler(store).replay(entries)
    summary = result.to_dict()

    return OfflineSyncResponse(
        success=result.all_succeeded,
        results=[SyncResult(**r) for r in summary["succeeded"]],
        failed=[SyncResult(**r) for r in summary["failed"]],
    )
