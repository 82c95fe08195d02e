# =========================================================
# REPORTS ROUTER
#
# - Administrations per period, by vaccine
# - Wastage per period, by reason and by vaccine
#   (filled by the expiry sweep)
# =========================================================

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import func
from datetime import date, timedelta

from vaccine_registry.database import get_db
from vaccine_registry.core.auth import get_current_user
from vaccine_registry.models.administrations import Administration
from vaccine_registry.models.vaccines import Vaccine
from vaccine_registry.models.vials import Vial
from vaccine_registry.models.wastage import Wastage
from vaccine_registry.schemas.report import (
    AdministrationReportResponse,
    VaccineDoseCount,
    WastageByReason,
    WastageReportResponse,
)
from vaccine_registry.utils.datetime_utils import day_bounds, utc_now

router = APIRouter(prefix="/reports", tags=["Reports"])


def _resolve_period(start_date: date | None, end_date: date | None) -> tuple[date, date]:
    end_date = end_date or utc_now().date()
    start_date = start_date or end_date - timedelta(days=29)

    if start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")

    return start_date, end_date


# =========================================================
# CORE ADMINISTRATION SUMMARY
# =========================================================
def _calculate_administrations(db: Session, start_date: date, end_date: date):
    start_dt, end_dt = day_bounds(start_date, end_date)
    period_filter = Administration.administered_at.between(start_dt, end_dt)

    total_doses = (
        db.query(func.count(Administration.id))
        .filter(period_filter)
        .scalar()
    )

    total_patients = (
        db.query(func.count(func.distinct(Administration.patient_id)))
        .filter(period_filter)
        .scalar()
    )

    rows = (
        db.query(
            Vaccine.id.label("vaccine_id"),
            Vaccine.name.label("vaccine_name"),
            func.count(Administration.id).label("doses"),
        )
        .join(Administration, Administration.vaccine_id == Vaccine.id)
        .filter(period_filter)
        .group_by(Vaccine.id, Vaccine.name)
        .order_by(func.count(Administration.id).desc(), Vaccine.name.asc())
        .all()
    )

    return {
        "start_date": start_date,
        "end_date": end_date,
        "total_doses": total_doses,
        "total_patients": total_patients,
        "by_vaccine": [
            VaccineDoseCount(vaccine_id=row.vaccine_id, vaccine_name=row.vaccine_name, doses=row.doses)
            for row in rows
        ],
    }


# =========================================================
# CORE WASTAGE SUMMARY
# =========================================================
def _calculate_wastage(db: Session, start_date: date, end_date: date):
    start_dt, end_dt = day_bounds(start_date, end_date)
    period_filter = Wastage.recorded_at.between(start_dt, end_dt)

    reason_rows = (
        db.query(
            Wastage.reason,
            func.count(Wastage.id).label("vials"),
            func.coalesce(func.sum(Wastage.doses_wasted), 0).label("doses_wasted"),
        )
        .filter(period_filter)
        .group_by(Wastage.reason)
        .order_by(Wastage.reason.asc())
        .all()
    )

    vaccine_rows = (
        db.query(
            Vaccine.id.label("vaccine_id"),
            Vaccine.name.label("vaccine_name"),
            func.coalesce(func.sum(Wastage.doses_wasted), 0).label("doses"),
        )
        .join(Vial, Vial.vaccine_id == Vaccine.id)
        .join(Wastage, Wastage.vial_id == Vial.id)
        .filter(period_filter)
        .group_by(Vaccine.id, Vaccine.name)
        .order_by(Vaccine.name.asc())
        .all()
    )

    by_reason = [
        WastageByReason(reason=row.reason, vials=row.vials, doses_wasted=row.doses_wasted)
        for row in reason_rows
    ]

    return {
        "start_date": start_date,
        "end_date": end_date,
        "total_vials": sum(item.vials for item in by_reason),
        "total_doses_wasted": sum(item.doses_wasted for item in by_reason),
        "by_reason": by_reason,
        "by_vaccine": [
            VaccineDoseCount(vaccine_id=row.vaccine_id, vaccine_name=row.vaccine_name, doses=row.doses)
            for row in vaccine_rows
        ],
    }


@router.get("/administrations", response_model=AdministrationReportResponse)
def administrations_report(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    start_date, end_date = _resolve_period(start_date, end_date)
    return _calculate_administrations(db, start_date, end_date)


@router.get("/wastage", response_model=WastageReportResponse)
def wastage_report(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    start_date, end_date = _resolve_period(start_date, end_date)
    return _calculate_wastage(db, start_date, end_date)
