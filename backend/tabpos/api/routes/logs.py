"""Activity log routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from tabpos.core.rbac import CanViewReports
from tabpos.core.responses import list_response
from tabpos.db.session import DbSession
from tabpos.schemas.activity import ActivityEntryResponse
from tabpos.services.activity_service import ActivityService

router = APIRouter()


@router.get("/")
def list_activity(
    current_user: CanViewReports,
    db: DbSession,
    start: Optional[date] = None,
    end: Optional[date] = None,
    table_num: Optional[int] = Query(default=None, ge=0),
):
    """Activity between two local dates (default yesterday to today), newest first."""
    entries = ActivityService(db, current_user.tenant_id).list_entries(start, end, table_num)
    return list_response([ActivityEntryResponse.model_validate(e) for e in entries])
