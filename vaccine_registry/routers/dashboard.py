# vaccine_registry/routers/dashboard.py

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_current_user
from vaccine_registry.core.config import settings
from vaccine_registry.models.administrations import Administration
from vaccine_registry.models.vials import Vial
from vaccine_registry.schemas.report import DashboardStatsResponse
from vaccine_registry.services.stock_queries import low_stock_vaccines
from vaccine_registry.utils.datetime_utils import day_bounds, utc_now

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStatsResponse)
def dashboard_stats(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    now = utc_now()
    start_dt, end_dt = day_bounds(now.date(), now.date())

    today_filter = Administration.administered_at.between(start_dt, end_dt)

    doses_today = (
        db.query(func.count(Administration.id))
        .filter(today_filter)
        .scalar()
    )

    patients_today = (
        db.query(func.count(func.distinct(Administration.patient_id)))
        .filter(today_filter)
        .scalar()
    )

    open_vials = (
        db.query(func.count(Vial.id))
        .filter(Vial.state == "open")
        .scalar()
    )

    low_stock = low_stock_vaccines(db, now, settings.LOW_STOCK_VIAL_THRESHOLD)

    return DashboardStatsResponse(
        doses_today=doses_today,
        patients_today=patients_today,
        open_vials=open_vials,
        low_stock_vaccines=len(low_stock),
    )
