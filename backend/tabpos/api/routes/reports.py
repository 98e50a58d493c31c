"""Sales report routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from tabpos.core.rbac import CanViewReports
from tabpos.db.session import DbSession
from tabpos.schemas.report import PeriodReport
from tabpos.services.report_service import ReportService

router = APIRouter()


@router.get("/", response_model=PeriodReport)
def period_report(
    current_user: CanViewReports,
    db: DbSession,
    period: str = "daily",
    day: Optional[date] = Query(default=None, alias="date"),
):
    return ReportService(db, current_user.tenant_id).period_report(period, day)
